import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.crud.user import get_or_create_user, link_referrer
from app.database.models import DEFAULT_DISPLAY_NAME, User


logger = structlog.get_logger(__name__)


def parse_referrer_param(start_param: str | None, user_id: int) -> int | None:
    """Deep-link argument of ``/start``: the inviter's id, never the user's own."""
    raw = (start_param or '').strip()
    if not raw:
        return None
    try:
        referrer_id = int(raw)
    except ValueError:
        return None
    if referrer_id <= 0 or referrer_id == user_id:
        return None
    return referrer_id


def display_name_for(username: str | None, first_name: str | None) -> str:
    return username or first_name or DEFAULT_DISPLAY_NAME


async def register_start(
    db: AsyncSession,
    *,
    user_id: int,
    display_name: str | None,
    start_param: str | None,
) -> User:
    await get_or_create_user(db, user_id, display_name)

    referrer_id = parse_referrer_param(start_param, user_id)
    if referrer_id is not None:
        linked = await link_referrer(db, user_id, referrer_id)
        if linked:
            logger.info('Referrer linked', user_id=user_id, referrer_id=referrer_id)
        else:
            logger.debug('Referrer already set, ignoring start param', user_id=user_id, referrer_id=referrer_id)

    await db.commit()
    return await get_or_create_user(db, user_id)
