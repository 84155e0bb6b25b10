from __future__ import annotations

from fastapi import Depends, Request

from supportbot.api.container import ServiceContainer
from supportbot.api.security import authenticate_user
from supportbot.core.exceptions import ForbiddenError
from supportbot.knowledge.faqs import FAQService
from supportbot.knowledge.ingestion.service import DocumentService
from supportbot.models import User
from supportbot.orchestration.chat import ChatOrchestrator


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_orchestrator(container: ServiceContainer = Depends(get_container)) -> ChatOrchestrator:
    return container.orchestrator


def get_document_service(container: ServiceContainer = Depends(get_container)) -> DocumentService:
    return container.document_service


def get_faq_service(container: ServiceContainer = Depends(get_container)) -> FAQService:
    return container.faq_service


async def get_current_user(user: User = Depends(authenticate_user)) -> User:
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
