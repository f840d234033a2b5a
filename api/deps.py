"""
Dependency injection utilities for API endpoints.
"""

from typing import AsyncGenerator, Optional
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from schemas.quiz import Attribution
from services.quiz_service import QuizService
from tasks.quiz_tasks import NotificationDispatcher


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in get_db():
        yield session


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()


def get_quiz_service(
    db: AsyncSession = Depends(get_db_session),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> QuizService:
    return QuizService(db, settings, dispatcher=dispatcher)


def get_client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else None


def get_attribution(request: Request) -> Attribution:
    return Attribution(ip_address=get_client_ip(request), user_agent=request.headers.get("user-agent"))
