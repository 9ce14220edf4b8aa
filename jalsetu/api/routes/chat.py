"""Chat endpoint implementation."""

import logging
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...core.config import Settings
from ...core.exceptions import NotFoundError, ValidationError
from ...core.logging import PerformanceMonitor
from ...core.monitoring import metrics_collector
from ...graph.workflow import FallbackOrchestrator
from ...knowledge import KnowledgeBase
from ...providers.base import to_history
from ..dependencies import get_app_settings, get_knowledge_base, get_orchestrators
from ..models import ChatRequest, ChatResponse, ErrorResponse

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_message(request: ChatRequest) -> str:
    if request.message is None or not request.message.strip():
        raise ValidationError("Message is required", field="message", value=request.message)
    return request.message.strip()


async def _answer(request: ChatRequest, orchestrator: FallbackOrchestrator) -> JSONResponse:
    message = _require_message(request)

    with PerformanceMonitor(
        "chat_request",
        logger=logger,
        provider=orchestrator.provider_name,
        history_length=len(request.history),
    ):
        try:
            result = await orchestrator.respond(message, to_history(request.turns()))
        except Exception as e:
            logger.error(f"Unexpected error in chat endpoint: {e}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error="Failed to process chat request", message=str(e)).to_body(),
            )

    logger.info(
        "Chat request completed",
        extra={
            "provider": orchestrator.provider_name,
            "rate_limited": result.rate_limited,
            "auth_error": result.auth_error,
            "used_fallback": result.used_fallback,
            "sources_count": len(result.sources),
        },
    )
    return JSONResponse(content=ChatResponse.from_result(result).to_body())


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat_endpoint(
    request: ChatRequest,
    settings: Settings = Depends(get_app_settings),
    orchestrators: Dict[str, FallbackOrchestrator] = Depends(get_orchestrators),
):
    """
    Answer a farming question with the configured default provider.

    Provider failures never surface as errors: rate limits produce a fixed
    "high demand" reply, anything else is answered from the local knowledge
    base and flagged in the response.
    """
    return await _answer(request, orchestrators[settings.chat_provider])


@router.post("/chat/local", response_model=ChatResponse, response_model_exclude_none=True)
async def local_chat_endpoint(
    request: ChatRequest,
    knowledge_base: KnowledgeBase = Depends(get_knowledge_base),
):
    """Answer from the local knowledge base only."""
    message = _require_message(request)
    metrics_collector.record_chat_outcome("local", "fallback")
    return JSONResponse(content=ChatResponse(response=knowledge_base.match(message)).to_body())


@router.post("/chat/{provider}", response_model=ChatResponse, response_model_exclude_none=True)
async def provider_chat_endpoint(
    provider: str,
    request: ChatRequest,
    orchestrators: Dict[str, FallbackOrchestrator] = Depends(get_orchestrators),
):
    """Answer with a specific provider (gemini, perplexity or edenai)."""
    orchestrator = orchestrators.get(provider)
    if orchestrator is None:
        raise NotFoundError(f"Unknown chat provider: {provider}", resource="provider", resource_id=provider)
    return await _answer(request, orchestrator)
