"""LangGraph fallback workflow for the farming chat assistant."""

import logging
from typing import Optional, Sequence

from langchain_core.messages import BaseMessage
from langgraph.graph import END, StateGraph

from ..core.monitoring import MetricsCollector, metrics_collector
from ..knowledge import KnowledgeBase
from ..providers.base import FARMING_SYSTEM_PROMPT, ChatProvider
from ..providers.classifier import ProviderErrorKind
from .state import ChatResponse, ChatState, create_initial_state, to_response

logger = logging.getLogger(__name__)

HIGH_DEMAND_MESSAGE = (
    "I'm currently experiencing high demand and have reached my usage limits. "
    "As I'm using a free API tier, I can only handle a certain number of questions per minute. "
    "Please try again in a minute or two, or ask a different question about water management for your farm."
)


class FallbackOrchestrator:
    """Answers one chat turn through a provider, falling back locally.

    The graph is linear: one provider call, then either END, the fixed
    rate-limit reply, or a knowledge base answer. Nothing is retried.
    """

    def __init__(
        self,
        provider: ChatProvider,
        knowledge_base: KnowledgeBase,
        system_prompt: Optional[str] = FARMING_SYSTEM_PROMPT,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.provider = provider
        self.knowledge_base = knowledge_base
        self.system_prompt = system_prompt
        self.metrics = metrics or metrics_collector
        self.graph = self._build_graph()

    @property
    def provider_name(self) -> str:
        return self.provider.name

    def _build_graph(self):
        workflow = StateGraph(ChatState)

        workflow.add_node("provider", self._provider_node)
        workflow.add_node("rate_limited", self._rate_limited_node)
        workflow.add_node("knowledge_base", self._knowledge_base_node)

        workflow.set_entry_point("provider")
        workflow.add_conditional_edges(
            "provider",
            self._route_after_provider,
            {
                "done": END,
                "rate_limited": "rate_limited",
                "knowledge_base": "knowledge_base",
            },
        )
        workflow.add_edge("rate_limited", END)
        workflow.add_edge("knowledge_base", END)

        # Single-shot requests; no checkpointer.
        compiled_graph = workflow.compile()
        logger.debug(f"Fallback workflow compiled for provider {self.provider_name}")
        return compiled_graph

    async def _provider_node(self, state: ChatState) -> dict:
        result = await self.provider.send(self.system_prompt, state["history"], state["message"])
        if result.ok:
            return {"result": result, "response_text": result.text, "sources": list(result.sources)}
        return {"result": result}

    def _route_after_provider(self, state: ChatState) -> str:
        result = state.get("result")
        if result is not None and result.ok:
            return "done"
        if result is not None and result.kind == ProviderErrorKind.RATE_LIMIT:
            return "rate_limited"
        return "knowledge_base"

    async def _rate_limited_node(self, state: ChatState) -> dict:
        return {"response_text": HIGH_DEMAND_MESSAGE, "rate_limited": True}

    async def _knowledge_base_node(self, state: ChatState) -> dict:
        result = state.get("result")
        text = self.knowledge_base.match(state["message"])
        logger.info(
            f"Answering from knowledge base after {self.provider_name} failure",
            extra={
                "provider": self.provider_name,
                "error_kind": result.kind.value if result is not None else None,
                "topics": self.knowledge_base.topics(state["message"]),
            },
        )
        if result is not None and result.kind == ProviderErrorKind.AUTH_FAILURE:
            return {"response_text": text, "auth_error": True}
        return {"response_text": text, "used_fallback": True}

    async def respond(self, message: str, history: Optional[Sequence[BaseMessage]] = None) -> ChatResponse:
        """Answer one chat turn. Never raises.

        Args:
            message: The farmer's question
            history: Earlier turns, oldest first

        Returns:
            ChatResponse with a non-empty ``response_text``
        """
        try:
            final_state = await self.graph.ainvoke(create_initial_state(message, list(history or [])))
            response = to_response(final_state)
        except Exception as e:
            logger.error(f"Fallback workflow failed for provider {self.provider_name}: {e}", exc_info=True)
            response = None

        if response is None or not response.response_text.strip():
            response = ChatResponse(response_text=self.knowledge_base.match(message), used_fallback=True)

        self.metrics.record_chat_outcome(self.provider_name, _outcome(response))
        return response


def _outcome(response: ChatResponse) -> str:
    if response.rate_limited:
        return "rate_limited"
    if response.auth_error:
        return "auth_error"
    if response.used_fallback:
        return "fallback"
    return "provider"
