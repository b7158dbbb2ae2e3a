from pydantic import BaseModel
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Load .env file if it exists (before reading os.getenv)
_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    with open(_env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                # Environment variables take precedence over .env
                if key not in os.environ:
                    os.environ[key] = value


def _sanitize_ascii(val: str) -> str:
    """Strip non-ASCII characters from keys and URLs."""
    return val.encode('ascii', errors='ignore').decode('ascii').strip()


class Settings(BaseModel):
    # HTTP server
    host: str = os.getenv("CHATGATE_HOST", "0.0.0.0")
    port: int = int(os.getenv("CHATGATE_PORT", "8080"))

    # Model backend
    openai_api_key: str = _sanitize_ascii(os.getenv("OPENAI_API_KEY", ""))
    openai_base_url: str = _sanitize_ascii(os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"))
    openai_chat_model: str = _sanitize_ascii(os.getenv("OPENAI_CHAT_MODEL", "gpt-4"))

    # Tool backends (empty URL disables the tool)
    github_mcp_url: str = _sanitize_ascii(os.getenv("GITHUB_MCP_URL", "http://localhost:3000/"))
    github_api_key: str = _sanitize_ascii(os.getenv("GITHUB_API_KEY", ""))
    github_default_user: str = os.getenv("GITHUB_DEFAULT_USER", "DEFAULT_USER")

    brave_search_mcp_url: str = _sanitize_ascii(os.getenv("BRAVE_SEARCH_MCP_URL", "http://localhost:3001/"))
    brave_search_api_key: str = _sanitize_ascii(os.getenv("BRAVE_SEARCH_API_KEY", ""))

    puppeteer_mcp_url: str = _sanitize_ascii(os.getenv("PUPPETEER_MCP_URL", "http://localhost:3002/"))

    # Timeouts (seconds)
    tool_timeout: float = float(os.getenv("TOOL_TIMEOUT", "30"))
    browser_tool_timeout: float = float(os.getenv("BROWSER_TOOL_TIMEOUT", "60"))

    # Conversations idle longer than this are dropped (seconds)
    session_idle_timeout: float = float(os.getenv("SESSION_IDLE_TIMEOUT", "3600"))


settings = Settings()

_oai_key = '***' + settings.openai_api_key[-4:] if len(settings.openai_api_key) > 4 else 'EMPTY'
logger.info(f"Config: model → {settings.openai_base_url}, model={settings.openai_chat_model} (key={_oai_key})")
logger.info(
    f"Config: tools → github={settings.github_mcp_url or 'off'}, "
    f"search={settings.brave_search_mcp_url or 'off'}, browser={settings.puppeteer_mcp_url or 'off'}"
)
