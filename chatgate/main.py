"""HTTP surface — chat, clear and health endpoints over the orchestrator."""
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .conversation import ConversationStore
from .llm import ModelBackend, ModelBackendError, OpenAIChatBackend, build_system_prompt
from .orchestrator import ChatOrchestrator
from .protocol import ChatRequest, ChatResponse, ClearRequest
from .tools import ToolRouter, build_tools

logger = logging.getLogger(__name__)

APOLOGY_REPLY = "Sorry, I encountered an error while processing your request. Please try again."


def create_app(
    config: Optional[Settings] = None,
    model: Optional[ModelBackend] = None,
    router: Optional[ToolRouter] = None,
) -> FastAPI:
    config = config or settings
    if router is None:
        router = ToolRouter(build_tools(config))
    if model is None:
        model = OpenAIChatBackend(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            model=config.openai_chat_model,
        )

    orchestrator = ChatOrchestrator(router, model)
    store = ConversationStore(build_system_prompt(router.tools))

    app = FastAPI(title="chatgate")
    app.state.orchestrator = orchestrator
    app.state.conversations = store

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(payload: ChatRequest):
        sid = payload.session_id
        logger.info(f"[{sid}] Chat: {payload.message[:200]}")
        store.prune(config.session_idle_timeout)
        async with store.lock(sid):
            conversation = store.get(sid)
            try:
                result = await orchestrator.process_message(conversation, payload.message)
            except ModelBackendError as e:
                logger.error(f"[{sid}] Chat failed: {e}")
                return JSONResponse(status_code=500, content={"response": APOLOGY_REPLY})
        logger.info(f"[{sid}] Reply ({result.state.value}, tool={result.tool_id})")
        return ChatResponse(response=result.reply)

    @app.post("/api/clear")
    async def clear(payload: Optional[ClearRequest] = None):
        sid = payload.session_id if payload else ClearRequest().session_id
        async with store.lock(sid):
            orchestrator.clear(store.get(sid))
        return {"status": "success"}

    @app.get("/api/health")
    async def health():
        return {"status": "UP"}

    return app


app = create_app()
