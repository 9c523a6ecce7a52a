from datetime import date

import pytest
from fastapi import HTTPException

from app.database.crud.score import get_best_score
from app.database.crud.user import get_or_create_user, get_user_by_id
from app.services.scoreboard_service import LEADERBOARD_SIZE, get_leaderboard, get_rank, submit_score


DAY = date(2026, 3, 1)


async def test_submit_score_returns_best_of_day(db):
    assert await submit_score(db, 1, 'vasya', 10, DAY) == 10
    assert await submit_score(db, 1, 'vasya', 4, DAY) == 10
    assert await submit_score(db, 1, 'vasya', 12, DAY) == 12

    assert await get_best_score(db, 1, DAY) == 12


async def test_submit_score_registers_unknown_user(db):
    await submit_score(db, 42, 'newcomer', 3, DAY)

    user = await get_user_by_id(db, 42)
    assert user.display_name == 'newcomer'
    assert user.tokens == 0


@pytest.mark.parametrize('bad', [True, 1.5, '7', None])
async def test_submit_score_rejects_non_integers(db, bad):
    with pytest.raises(HTTPException) as exc:
        await submit_score(db, 1, 'vasya', bad, DAY)

    assert exc.value.status_code == 400
    assert await get_user_by_id(db, 1) is None


@pytest.mark.parametrize('bad', [2**31, -(2**31) - 1, 2**63])
async def test_submit_score_rejects_out_of_range_values(db, bad):
    with pytest.raises(HTTPException) as exc:
        await submit_score(db, 1, 'vasya', bad, DAY)

    assert exc.value.status_code == 400
    assert await get_user_by_id(db, 1) is None


async def test_leaderboard_is_capped_and_ranks_the_caller(db):
    for user_id in range(1, 16):
        await submit_score(db, user_id, f'p{user_id}', user_id * 10, DAY)

    view = await get_leaderboard(db, 3, DAY)

    assert len(view.top) == LEADERBOARD_SIZE
    assert view.top[0].user_id == 15
    assert view.rank == 13


async def test_rank_of_user_without_score_follows_last_entry(db):
    await submit_score(db, 1, 'a', 5, DAY)
    await submit_score(db, 2, 'b', 7, DAY)
    await get_or_create_user(db, 3, 'idle')
    await db.commit()

    assert await get_rank(db, 3, DAY) == 3
    assert await get_rank(db, 2, DAY) == 1


async def test_rank_of_unknown_user_is_none(db):
    await submit_score(db, 1, 'a', 5, DAY)

    assert await get_rank(db, 999, DAY) is None
    view = await get_leaderboard(db, None, DAY)
    assert view.rank is None


async def test_leaderboard_ties_break_by_user_id(db):
    await submit_score(db, 9, 'late', 50, DAY)
    await submit_score(db, 3, 'early', 50, DAY)

    view = await get_leaderboard(db, 9, DAY)

    assert [e.user_id for e in view.top] == [3, 9]
    assert view.rank == 2
