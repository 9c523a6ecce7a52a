import structlog
from aiogram import Dispatcher, types
from aiogram.filters import CommandObject, CommandStart
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.user_service import display_name_for, register_start


logger = structlog.get_logger(__name__)


async def handle_start(message: types.Message, command: CommandObject, db: AsyncSession):
    tg_user = message.from_user
    if tg_user is None:
        return

    try:
        await register_start(
            db,
            user_id=tg_user.id,
            display_name=display_name_for(tg_user.username, tg_user.first_name),
            start_param=command.args,
        )
    except Exception as exc:
        await db.rollback()
        logger.warning('Failed to register /start', user_id=tg_user.id, exc=exc)


def register_handlers(dp: Dispatcher):
    dp.message.register(handle_start, CommandStart())
