import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database.crud.channel import upsert_channel
from app.services.daily_reset_service import DailyResetService
from app.utils.identifiers import normalize_channel_username
from app.webapi.schemas.game import AddChannelRequest, OkResponse, RunResetRequest, RunResetResponse

from ..dependencies import get_daily_reset_service, get_web_db, require_admin


logger = structlog.get_logger(__name__)

router = APIRouter(prefix='/admin', tags=['Admin'], dependencies=[Depends(require_admin)])


@router.post('/add_channel', response_model=OkResponse)
async def add_channel(
    payload: AddChannelRequest,
    db: AsyncSession = Depends(get_web_db),
):
    username = normalize_channel_username(payload.username)
    if not username:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='username required')

    reward = settings.DEFAULT_CHANNEL_REWARD if payload.reward is None else payload.reward
    await upsert_channel(db, username, reward)
    await db.commit()
    logger.info('Channel upserted', channel=username, reward=reward)
    return OkResponse()


@router.post('/run_reset', response_model=RunResetResponse)
async def run_reset(
    payload: RunResetRequest | None = Body(default=None),
    service: DailyResetService = Depends(get_daily_reset_service),
):
    result = await service.run_manual(payload.day if payload else None)
    return RunResetResponse(day=result.day, credited_users=len(result.payouts), total_amount=result.total_amount)
