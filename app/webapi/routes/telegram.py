from typing import Any

import structlog
from aiogram import Bot, Dispatcher
from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_bot, get_dispatcher, get_web_db


logger = structlog.get_logger(__name__)

router = APIRouter(tags=['Telegram'])


@router.post('/telegram_webhook')
async def telegram_webhook(
    update: dict[str, Any] = Body(...),
    bot: Bot | None = Depends(get_bot),
    dp: Dispatcher | None = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_web_db),
):
    # Telegram retries on non-2xx, so failures are logged and acknowledged
    if bot is None or dp is None:
        logger.warning('Telegram update ignored: bot is not configured', update_id=update.get('update_id'))
        return {'ok': True}

    try:
        await dp.feed_webhook_update(bot, update, db=db)
    except Exception as exc:
        logger.error('Webhook update processing failed', update_id=update.get('update_id'), exc=exc)
    return {'ok': True}
