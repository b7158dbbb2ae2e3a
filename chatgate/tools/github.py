"""GitHub tool — repositories, branches and commits through the GitHub MCP backend."""
import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, Field

from ..protocol import ErrorKind, ToolRequest, ToolResponse
from .base import (
    BackendCallError, BackendClient, ToolKind,
    bullet_lines, classify, compile_patterns, extract_first, matches_any, parse_payload,
)

logger = logging.getLogger(__name__)

# Stand-in identity sent when the query names no user; the backend resolves
# it to the account behind the API key.
DEFAULT_USER = "DEFAULT_USER"

_TRIGGERS = compile_patterns(
    r"\b(fetch|get|pull|show|list)\s+.*?\b(github|repos?|repository|repositories)\b",
    r"\bgithub\s+.*?\b(repos?|repository|repositories)\b",
    r"\bmy\s+latest\s+(repos?|repository|code)\b",
    r"\blatest\s+(commit|branch|repo|code)\s+on\s+github",
)

_COMMITS, _BRANCHES, _NAMED_REPO, _LATEST_REPO, _LIST_REPOS = compile_patterns(
    r"\b(commits?|changes)\b",
    r"\bbranch(es)?\b",
    r"\b(repo|repository)\s+(named|called)\s+[\w.-]+",
    r"\blatest\s+(repo|repository)\b",
    r"\b(list|show)\s+.*?\b(repos?|repositories)\b",
)
_ACTION_RULES = [
    (_COMMITS, "getCommits"),
    (_BRANCHES, "getBranches"),
    (_NAMED_REPO, "getRepository"),
    (_LATEST_REPO, "listRepositories"),
    (_LIST_REPOS, "listRepositories"),
]

_MY_REPO = compile_patterns(r"\bmy\s+(?:github\s+)?(repos?|repository|repositories|code)\b")[0]
_USERNAME_RULES = [(p, 1) for p in compile_patterns(
    r"\bfor\s+user\s+([\w-]+)",
    r"\b(?:user|username|account)\s+([\w-]+)",
)]

_REPOSITORY_RULES = [(p, 1) for p in compile_patterns(
    r"\b(?:repo|repository)\s+named\s+([\w.-]+)",
    r"\b(?:repo|repository)\s+called\s+([\w.-]+)",
)]

_BRANCH_RULES = [(p, 1) for p in compile_patterns(
    r"\bbranch\s+(?:named|called)\s+([\w./-]+)",
)]


def determine_action(query: str) -> str:
    return classify(_ACTION_RULES, query, "listRepositories")


def extract_username(query: str, default: str = DEFAULT_USER) -> str:
    if _MY_REPO.search(query):
        return default
    return extract_first(_USERNAME_RULES, query) or default


def extract_repository_name(query: str) -> Optional[str]:
    return extract_first(_REPOSITORY_RULES, query)


def extract_branch_name(query: str) -> Optional[str]:
    return extract_first(_BRANCH_RULES, query)


# ── Backend payloads ──────────────────────────────────────────

class GitHubRequest(BaseModel):
    action: str
    username: str
    apiKey: str
    repository: Optional[str] = None
    branch: Optional[str] = None


class GitHubRepository(BaseModel):
    name: str
    description: Optional[str] = None
    url: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    stars: int = Field(default=0, alias="stargazers_count")
    language: Optional[str] = None


class GitHubCommit(BaseModel):
    sha: str
    message: str = ""
    author: Optional[str] = None
    date: Optional[str] = None


class GitHubResult(BaseModel):
    """Either a ready-made envelope (response/error) or structured data."""
    response: Optional[str] = None
    error: Optional[str] = None
    repositories: Optional[List[GitHubRepository]] = None
    repository: Optional[GitHubRepository] = None
    branches: Optional[List[str]] = None
    commits: Optional[List[GitHubCommit]] = None


def _format_repository(repo: GitHubRepository) -> str:
    details = [d for d in (repo.language, f"{repo.stars} stars") if d]
    line = f"{repo.name} ({', '.join(details)})"
    if repo.description:
        line += f": {repo.description}"
    if repo.url:
        line += f"\n  {repo.url}"
    return line


def format_github_result(result: GitHubResult, username: str, repository: Optional[str]) -> Optional[str]:
    if result.repositories is not None:
        if not result.repositories:
            return f"No repositories found for {username}."
        return f"Repositories for {username}:\n" + bullet_lines([_format_repository(r) for r in result.repositories])
    if result.repository is not None:
        repo = result.repository
        text = _format_repository(repo)
        if repo.updated_at:
            text += f"\n  Last updated: {repo.updated_at}"
        return text
    target = repository or f"{username}'s repositories"
    if result.branches is not None:
        if not result.branches:
            return f"No branches found in {target}."
        return f"Branches in {target}:\n" + bullet_lines(result.branches)
    if result.commits is not None:
        if not result.commits:
            return f"No commits found in {target}."
        lines = []
        for c in result.commits:
            first_line = c.message.splitlines()[0] if c.message else ""
            by = ", ".join(x for x in (c.author, c.date) if x)
            lines.append(f"{c.sha[:7]} {first_line}" + (f" ({by})" if by else ""))
        return f"Recent commits in {target}:\n" + bullet_lines(lines)
    if result.response and result.response.strip():
        return result.response
    return None


class RepositoryTool:
    id = "github"
    kind = ToolKind.GITHUB
    action_names = ("getRepository", "listRepositories", "getBranches", "getCommits")
    description = "Look up GitHub repositories, branches and commits"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        default_user: str = DEFAULT_USER,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._default_user = default_user
        self._backend = BackendClient(base_url, "github/execute", timeout=timeout, transport=transport)

    def can_handle(self, query: str) -> bool:
        return matches_any(_TRIGGERS, query)

    async def execute(self, request: ToolRequest) -> ToolResponse:
        action = determine_action(request.query)
        username = extract_username(request.query, self._default_user)
        repository = extract_repository_name(request.query)
        branch = extract_branch_name(request.query)
        context = request.context.with_parameters(
            action=action, username=username, repository=repository, branch=branch,
        )

        body = GitHubRequest(
            action=action,
            username=username,
            apiKey=self._api_key,
            repository=repository,
            branch=branch,
        )

        try:
            data = await self._backend.post_json(body.model_dump())
            result = parse_payload(GitHubResult, data)
        except BackendCallError as e:
            logger.error(f"GitHub {action} for {username} failed: {e.message}")
            return ToolResponse.fail(f"Error fetching GitHub data: {e.message}", e.detail, e.kind, context)

        if result.error:
            logger.warning(f"GitHub backend reported an error: {result.error}")
            text = (result.response or "").strip() or f"Error fetching GitHub data: {result.error}"
            return ToolResponse.fail(text, result.error, ErrorKind.BACKEND_ERROR, context)

        text = format_github_result(result, username, repository)
        if text is None:
            return ToolResponse.fail(
                "Unable to get data from GitHub.", "Empty response body", ErrorKind.MALFORMED_RESPONSE, context,
            )
        return ToolResponse.ok(text, context)
