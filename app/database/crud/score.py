from dataclasses import dataclass
from datetime import UTC, date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import DEFAULT_DISPLAY_NAME, DailyScore, User
from app.database.upsert import dialect_insert


@dataclass(frozen=True)
class RankedEntry:
    user_id: int
    score: int
    name: str


async def upsert_best_score(db: AsyncSession, user_id: int, day: date, score: int) -> int:
    """Keep the best score per (user, day) in a single statement. Returns the stored best."""
    table = DailyScore.__table__
    stmt = dialect_insert(db, table).values(
        user_id=user_id,
        day=day,
        score=score,
        updated_at=datetime.now(UTC),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.day],
        set_={'score': stmt.excluded.score, 'updated_at': stmt.excluded.updated_at},
        where=table.c.score < stmt.excluded.score,
    )
    await db.execute(stmt)
    return await get_best_score(db, user_id, day)


async def get_best_score(db: AsyncSession, user_id: int, day: date) -> int | None:
    result = await db.execute(
        select(DailyScore.score).where(DailyScore.user_id == user_id, DailyScore.day == day)
    )
    return result.scalar_one_or_none()


async def get_rankings(db: AsyncSession, day: date) -> list[RankedEntry]:
    result = await db.execute(
        select(
            DailyScore.user_id,
            DailyScore.score,
            func.coalesce(User.display_name, DEFAULT_DISPLAY_NAME),
        )
        .outerjoin(User, User.id == DailyScore.user_id)
        .where(DailyScore.day == day)
        .order_by(DailyScore.score.desc(), DailyScore.user_id.asc())
    )
    return [RankedEntry(user_id=int(row[0]), score=int(row[1]), name=row[2]) for row in result.all()]
