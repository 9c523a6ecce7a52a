from datetime import UTC, date, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Meta
from app.database.upsert import dialect_insert


logger = structlog.get_logger(__name__)

LAST_RESET_KEY = 'last_reset'
LAST_DISTRIBUTION_DAY_KEY = 'last_distribution_day'


async def get_meta(db: AsyncSession, key: str) -> str | None:
    result = await db.execute(select(Meta.value).where(Meta.key == key))
    return result.scalar_one_or_none()


async def set_meta(db: AsyncSession, key: str, value: str) -> None:
    table = Meta.__table__
    stmt = dialect_insert(db, table).values(key=key, value=value, updated_at=datetime.now(UTC))
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.key],
        set_={'value': stmt.excluded.value, 'updated_at': stmt.excluded.updated_at},
    )
    await db.execute(stmt)


async def get_last_distributed_day(db: AsyncSession) -> date | None:
    raw = await get_meta(db, LAST_DISTRIBUTION_DAY_KEY)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        logger.warning('Ignoring malformed last distribution day', value=raw)
        return None


async def advance_last_distributed_day(db: AsyncSession, day: date) -> bool:
    """Move the marker forward to ``day``; an older or equal day leaves it untouched."""
    current = await get_last_distributed_day(db)
    if current is not None and current >= day:
        return False
    await set_meta(db, LAST_DISTRIBUTION_DAY_KEY, day.isoformat())
    return True
