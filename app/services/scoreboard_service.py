from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.crud.score import RankedEntry, get_rankings, upsert_best_score
from app.database.crud.user import get_or_create_user, user_exists
from app.database.models import INT32_MAX, INT32_MIN


logger = structlog.get_logger(__name__)

LEADERBOARD_SIZE = 10


@dataclass
class LeaderboardView:
    day: date
    top: list[RankedEntry] = field(default_factory=list)
    rank: int | None = None


def _validate_score(score: int) -> int:
    # bool is an int subclass; a JSON true is not a score
    if isinstance(score, bool) or not isinstance(score, int):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='score must be an integer')
    if not INT32_MIN <= score <= INT32_MAX:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='score out of range')
    return score


async def submit_score(db: AsyncSession, user_id: int, display_name: str | None, score: int, day: date) -> int:
    score = _validate_score(score)
    await get_or_create_user(db, user_id, display_name)
    best = await upsert_best_score(db, user_id, day, score)
    await db.commit()
    logger.debug('Score submitted', user_id=user_id, day=day.isoformat(), score=score, best=best)
    return best


def rank_in(rankings: list[RankedEntry], user_id: int) -> int | None:
    for position, entry in enumerate(rankings, start=1):
        if entry.user_id == user_id:
            return position
    return None


async def get_rank(db: AsyncSession, user_id: int, day: date, rankings: list[RankedEntry] | None = None) -> int | None:
    """1-based rank; a known user without a score that day is placed right after the last ranked entry."""
    if rankings is None:
        rankings = await get_rankings(db, day)
    position = rank_in(rankings, user_id)
    if position is not None:
        return position
    if await user_exists(db, user_id):
        return len(rankings) + 1
    return None


async def get_leaderboard(db: AsyncSession, user_id: int | None, day: date) -> LeaderboardView:
    rankings = await get_rankings(db, day)
    rank = await get_rank(db, user_id, day, rankings) if user_id else None
    return LeaderboardView(day=day, top=rankings[:LEADERBOARD_SIZE], rank=rank)
