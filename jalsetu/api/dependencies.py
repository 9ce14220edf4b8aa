"""FastAPI dependencies resolving the objects built in ``create_app``."""

from typing import Dict

from fastapi import Request

from ..core.config import Settings
from ..database.operations import FarmRepository
from ..graph.workflow import FallbackOrchestrator
from ..knowledge import KnowledgeBase
from ..services.dashboard import DashboardService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrators(request: Request) -> Dict[str, FallbackOrchestrator]:
    """One orchestrator per provider name."""
    return request.app.state.orchestrators


def get_knowledge_base(request: Request) -> KnowledgeBase:
    return request.app.state.knowledge_base


def get_repository(request: Request) -> FarmRepository:
    return request.app.state.repository


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard
