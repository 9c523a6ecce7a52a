import secrets
from collections.abc import AsyncIterator

from aiogram import Bot, Dispatcher
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database.database import AsyncSessionLocal, get_db
from app.external.telegram import TelegramGateway
from app.services.daily_reset_service import DailyResetService


async def get_web_db() -> AsyncIterator[AsyncSession]:
    async for session in get_db():
        yield session


def get_telegram_gateway(request: Request) -> TelegramGateway:
    gateway = getattr(request.app.state, 'telegram_gateway', None)
    return gateway or TelegramGateway(None)


def get_bot(request: Request) -> Bot | None:
    return getattr(request.app.state, 'bot', None)


def get_dispatcher(request: Request) -> Dispatcher | None:
    return getattr(request.app.state, 'dispatcher', None)


def get_daily_reset_service(
    request: Request,
    gateway: TelegramGateway = Depends(get_telegram_gateway),
) -> DailyResetService:
    service = getattr(request.app.state, 'daily_reset_service', None)
    if service is None:
        service = DailyResetService(AsyncSessionLocal, gateway)
    return service


async def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    expected = settings.ADMIN_API_TOKEN
    if not expected:
        return
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin token required')
