from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Channel
from app.database.upsert import dialect_insert


async def list_channels(db: AsyncSession) -> list[Channel]:
    rows = (await db.execute(select(Channel).order_by(Channel.username.asc()))).scalars().all()
    return list(rows)


async def get_channel_reward(db: AsyncSession, username: str) -> int | None:
    result = await db.execute(select(Channel.reward).where(Channel.username == username))
    return result.scalar_one_or_none()


async def upsert_channel(db: AsyncSession, username: str, reward: int) -> None:
    table = Channel.__table__
    stmt = dialect_insert(db, table).values(username=username, reward=reward)
    stmt = stmt.on_conflict_do_update(index_elements=[table.c.username], set_={'reward': stmt.excluded.reward})
    await db.execute(stmt)
