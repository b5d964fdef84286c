import logging
from typing import Callable, Optional, Sequence, TypeVar

from .ai_client import AIClient
from .errors import AdapterError, Err, MalformedResponseError, Ok, Result
from .models import (
    AnalysisRequest,
    AnalysisResponse,
    ChatRequest,
    ChatResponse,
    ChatTurn,
    CompareRequest,
    CompareResponse,
    CompetitorMetadata,
)
from .prompts import CHAT_SYSTEM_PROMPT, build_analysis_prompt, build_chat_prompt, build_compare_prompt
from .validator import parse_analysis_response, parse_chat_response, parse_compare_response
from .youtube import YouTubeClient, YouTubeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_logged(func: Callable, *args) -> None:
    """Run a best-effort side effect; failures are logged, never raised."""
    try:
        func(*args)
    except Exception:
        logger.exception("Background task %s failed", getattr(func, "__name__", func))


class GrowthPipeline:
    """prompt -> AI client -> validator, one call per request."""

    def __init__(self, ai: AIClient, youtube: Optional[YouTubeClient] = None):
        self.ai = ai
        self.youtube = youtube

    async def _run(
        self,
        name: str,
        prompt: str,
        parse: Callable[[str], T],
        history: Sequence[ChatTurn] = (),
        system: Optional[str] = None,
    ) -> Result[T]:
        try:
            text = await self.ai.complete_json(prompt, history, system)
            return Ok(parse(text))
        except AdapterError as exc:
            logger.warning("%s: AI call failed: %s", name, exc)
            return Err(exc)
        except MalformedResponseError as exc:
            logger.error("%s: malformed AI response: %s\n--- raw ---\n%s", name, exc, exc.raw_text)
            return Err(exc)

    async def analyze(self, req: AnalysisRequest) -> Result[AnalysisResponse]:
        return await self._run("analyze", build_analysis_prompt(req), parse_analysis_response)

    async def chat(self, req: ChatRequest) -> Result[ChatResponse]:
        return await self._run(
            "chat",
            build_chat_prompt(req.message, req.context),
            parse_chat_response,
            history=req.history,
            system=CHAT_SYSTEM_PROMPT,
        )

    async def resolve_competitor(self, competitor_url: Optional[str]) -> Optional[CompetitorMetadata]:
        if not competitor_url or self.youtube is None:
            return None
        try:
            return await self.youtube.competitor_metadata(competitor_url)
        except YouTubeError as exc:
            logger.info("Competitor lookup failed, using niche benchmark: %s", exc)
            return None

    async def compare(self, req: CompareRequest) -> Result[CompareResponse]:
        competitor = await self.resolve_competitor(req.competitorUrl)
        return await self._run("compare", build_compare_prompt(req.userVideo, competitor), parse_compare_response)
