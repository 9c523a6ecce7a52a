from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.crud.channel import list_channels
from app.database.crud.user import get_or_create_user
from app.external.telegram import TelegramGateway
from app.services.reward_service import claim_subscription, confirm_referral
from app.webapi.schemas.game import (
    ChannelInfo,
    ChannelsResponse,
    ClaimInviteRequest,
    ClaimInviteResponse,
    ClaimSubscribeRequest,
    ClaimSubscribeResponse,
)

from ..dependencies import get_telegram_gateway, get_web_db


router = APIRouter(tags=['Rewards'])


@router.post('/claim_invite', response_model=ClaimInviteResponse)
async def claim_invite(
    payload: ClaimInviteRequest,
    db: AsyncSession = Depends(get_web_db),
    gateway: TelegramGateway = Depends(get_telegram_gateway),
):
    await get_or_create_user(db, payload.user_id, payload.name)
    await db.commit()
    result = await confirm_referral(db, payload.user_id, gateway)
    return ClaimInviteResponse(credited=result.credited)


@router.post('/claim_subscribe', response_model=ClaimSubscribeResponse, response_model_exclude_none=True)
async def claim_subscribe(
    payload: ClaimSubscribeRequest,
    db: AsyncSession = Depends(get_web_db),
    gateway: TelegramGateway = Depends(get_telegram_gateway),
):
    result = await claim_subscription(db, payload.user_id, payload.channel, gateway)
    return ClaimSubscribeResponse(credited=result.credited, reward=result.reward, reason=result.reason)


@router.get('/channels', response_model=ChannelsResponse)
async def channels(db: AsyncSession = Depends(get_web_db)):
    rows = await list_channels(db)
    return ChannelsResponse(channels=[ChannelInfo(username=row.username, reward=row.reward) for row in rows])
