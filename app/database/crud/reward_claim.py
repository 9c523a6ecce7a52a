from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import ClaimType, RewardClaim
from app.database.upsert import dialect_insert


async def has_claim(db: AsyncSession, *, user_id: int, claim_type: ClaimType, claim_key: str) -> bool:
    result = await db.execute(
        select(RewardClaim.id)
        .where(
            RewardClaim.user_id == user_id,
            RewardClaim.claim_type == claim_type.value,
            RewardClaim.claim_key == claim_key,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def try_insert_claim(
    db: AsyncSession,
    *,
    user_id: int,
    claim_type: ClaimType,
    claim_key: str,
    payload: dict[str, Any] | None = None,
) -> bool:
    """Record a one-time claim. Returns False when the (user, type, key) tuple already exists."""
    table = RewardClaim.__table__
    stmt = (
        dialect_insert(db, table)
        .values(
            user_id=user_id,
            claim_type=claim_type.value,
            claim_key=claim_key,
            payload=payload or {},
            created_at=datetime.now(UTC),
        )
        .on_conflict_do_nothing(index_elements=[table.c.user_id, table.c.claim_type, table.c.claim_key])
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


def add_daily_claim(db: AsyncSession, *, user_id: int, payload: dict[str, Any]) -> RewardClaim:
    claim = RewardClaim(
        user_id=user_id,
        claim_type=ClaimType.DAILY.value,
        claim_key=None,
        payload=payload,
        created_at=datetime.now(UTC),
    )
    db.add(claim)
    return claim


async def list_claims(
    db: AsyncSession,
    *,
    user_id: int,
    claim_type: ClaimType | None = None,
) -> list[RewardClaim]:
    query = select(RewardClaim).where(RewardClaim.user_id == user_id)
    if claim_type is not None:
        query = query.where(RewardClaim.claim_type == claim_type.value)
    rows = (await db.execute(query.order_by(RewardClaim.id.asc()))).scalars().all()
    return list(rows)
