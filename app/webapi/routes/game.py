from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.crud.user import get_balance
from app.services.scoreboard_service import get_leaderboard, submit_score
from app.utils.game_day import current_game_day
from app.utils.identifiers import parse_user_id
from app.webapi.schemas.game import (
    LeaderboardEntry,
    LeaderboardResponse,
    SubmitScoreRequest,
    SubmitScoreResponse,
    TokensResponse,
)

from ..dependencies import get_web_db


router = APIRouter(tags=['Game'])


@router.post('/submit_score', response_model=SubmitScoreResponse)
async def submit_score_endpoint(
    payload: SubmitScoreRequest,
    db: AsyncSession = Depends(get_web_db),
):
    best = await submit_score(db, payload.user_id, payload.name, payload.score, current_game_day())
    return SubmitScoreResponse(best_score=best)


@router.get('/leaderboard', response_model=LeaderboardResponse)
async def leaderboard(
    user_id: str | None = Query(default=None),
    db: AsyncSession = Depends(get_web_db),
):
    view = await get_leaderboard(db, parse_user_id(user_id), current_game_day())
    return LeaderboardResponse(
        top10=[LeaderboardEntry(user_id=e.user_id, score=e.score, name=e.name) for e in view.top],
        rank=view.rank,
        day=view.day,
    )


@router.get('/my_tokens', response_model=TokensResponse)
async def my_tokens(
    user_id: str | None = Query(default=None),
    db: AsyncSession = Depends(get_web_db),
):
    uid = parse_user_id(user_id)
    if uid is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='user_id required')
    return TokensResponse(tokens=await get_balance(db, uid))
