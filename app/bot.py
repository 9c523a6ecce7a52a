import structlog
from aiogram import Bot, Dispatcher

from app.config import settings
from app.handlers import start


logger = structlog.get_logger(__name__)


def create_bot() -> Bot | None:
    if not settings.is_bot_configured():
        logger.warning('BOT_TOKEN is not configured: notifications and subscription checks are disabled')
        return None
    return Bot(token=settings.BOT_TOKEN)


def create_dispatcher() -> Dispatcher:
    dp = Dispatcher()
    start.register_handlers(dp)
    return dp
