from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import DEFAULT_DISPLAY_NAME, User
from app.database.upsert import dialect_insert


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id))
    return result.scalar_one_or_none() is not None


async def get_or_create_user(db: AsyncSession, user_id: int, display_name: str | None = None) -> User:
    """Insert the user with a zero balance unless it already exists. The stored name is never overwritten."""
    table = User.__table__
    stmt = (
        dialect_insert(db, table)
        .values(
            id=user_id,
            display_name=(display_name or '').strip() or DEFAULT_DISPLAY_NAME,
            tokens=0,
            created_at=datetime.now(UTC),
            referral_confirmed=False,
        )
        .on_conflict_do_nothing(index_elements=[table.c.id])
    )
    await db.execute(stmt)
    return await get_user_by_id(db, user_id)


async def get_balance(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(User.tokens).where(User.id == user_id))
    return int(result.scalar() or 0)


async def credit_tokens(db: AsyncSession, user_id: int, amount: int) -> bool:
    if amount < 0:
        raise ValueError('Token credits must be non-negative')
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(tokens=User.tokens + amount)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def link_referrer(db: AsyncSession, user_id: int, referrer_id: int) -> bool:
    """Store the referrer only if none is set yet. Returns whether the link was written."""
    if referrer_id == user_id:
        return False
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.referrer_id.is_(None))
        .values(referrer_id=referrer_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def mark_referral_confirmed(db: AsyncSession, user_id: int) -> bool:
    """Flip the confirmation flag; only one caller can win the update."""
    result = await db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.referrer_id.is_not(None),
            User.referral_confirmed.is_(False),
        )
        .values(referral_confirmed=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
