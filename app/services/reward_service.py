from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Literal

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database.crud.channel import get_channel_reward
from app.database.crud.meta import LAST_RESET_KEY, advance_last_distributed_day, set_meta
from app.database.crud.reward_claim import add_daily_claim, has_claim, try_insert_claim
from app.database.crud.score import get_rankings
from app.database.crud.user import (
    credit_tokens,
    get_or_create_user,
    get_user_by_id,
    mark_referral_confirmed,
    user_exists,
)
from app.database.models import DEFAULT_DISPLAY_NAME, ClaimType
from app.external.telegram import MembershipCheckError, TelegramGateway, TelegramNotConfiguredError
from app.utils.identifiers import normalize_channel_username


logger = structlog.get_logger(__name__)

NotCreditedReason = Literal['already_claimed', 'not_member', 'no_referrer', 'referrer_unknown', 'already_confirmed']

# rank -> tokens; ranks 4-5 earn less than ranks 6-10 on purpose
PODIUM_PAYOUTS = {1: 100, 2: 70, 3: 50}
BONUS_TIER_RANKS = range(6, 11)
BONUS_TIER_PAYOUT = 30
PARTICIPATION_PAYOUT = 5


@dataclass
class ReferralResult:
    credited: bool
    referrer_id: int | None = None
    amount: int = 0
    reason: NotCreditedReason | None = None


@dataclass
class SubscriptionClaimResult:
    credited: bool
    reward: int | None = None
    reason: NotCreditedReason | None = None


@dataclass
class Payout:
    user_id: int
    rank: int
    score: int
    amount: int


@dataclass
class DistributionResult:
    day: date
    payouts: list[Payout] = field(default_factory=list)

    @property
    def total_amount(self) -> int:
        return sum(p.amount for p in self.payouts)


def payout_for_rank(rank: int) -> int:
    if rank < 1:
        raise ValueError('rank is 1-based')
    if rank in PODIUM_PAYOUTS:
        return PODIUM_PAYOUTS[rank]
    if rank in BONUS_TIER_RANKS:
        return BONUS_TIER_PAYOUT
    return PARTICIPATION_PAYOUT


async def confirm_referral(db: AsyncSession, new_user_id: int, gateway: TelegramGateway) -> ReferralResult:
    """Credit the inviter once, on the invited user's first app open."""
    new_user = await get_user_by_id(db, new_user_id)
    if not new_user or not new_user.referrer_id:
        return ReferralResult(credited=False, reason='no_referrer')
    if new_user.referral_confirmed:
        return ReferralResult(credited=False, referrer_id=new_user.referrer_id, reason='already_confirmed')

    referrer_id = int(new_user.referrer_id)
    if not await user_exists(db, referrer_id):
        return ReferralResult(credited=False, referrer_id=referrer_id, reason='referrer_unknown')

    if not await mark_referral_confirmed(db, new_user_id):
        await db.rollback()
        return ReferralResult(credited=False, referrer_id=referrer_id, reason='already_confirmed')

    claimed = await try_insert_claim(
        db,
        user_id=referrer_id,
        claim_type=ClaimType.REFERRAL,
        claim_key=str(new_user_id),
        payload={'invited': new_user_id},
    )
    if not claimed:
        await db.rollback()
        return ReferralResult(credited=False, referrer_id=referrer_id, reason='already_claimed')

    amount = settings.REFERRAL_REWARD
    await credit_tokens(db, referrer_id, amount)
    await db.commit()
    logger.info('Referral reward credited', referrer_id=referrer_id, invited_user_id=new_user_id, amount=amount)

    invited_name = new_user.display_name or DEFAULT_DISPLAY_NAME
    await gateway.send_message(referrer_id, f'Тебе начислено +{amount} златников за приглашённого {invited_name}')
    return ReferralResult(credited=True, referrer_id=referrer_id, amount=amount)


async def claim_subscription(
    db: AsyncSession,
    user_id: int,
    channel: str,
    gateway: TelegramGateway,
) -> SubscriptionClaimResult:
    channel = normalize_channel_username(channel)
    if not channel:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='channel required')

    if await has_claim(db, user_id=user_id, claim_type=ClaimType.SUBSCRIPTION, claim_key=channel):
        return SubscriptionClaimResult(credited=False, reason='already_claimed')

    try:
        is_member = await gateway.is_channel_member(channel, user_id)
    except TelegramNotConfiguredError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Bot token not configured on server',
        )
    except MembershipCheckError as exc:
        logger.error('Membership check failed', user_id=user_id, channel=channel, exc=exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail='telegram_api_error')

    if not is_member:
        return SubscriptionClaimResult(credited=False, reason='not_member')

    configured = await get_channel_reward(db, channel)
    reward = settings.DEFAULT_CHANNEL_REWARD if configured is None else int(configured)

    await get_or_create_user(db, user_id)
    claimed = await try_insert_claim(
        db,
        user_id=user_id,
        claim_type=ClaimType.SUBSCRIPTION,
        claim_key=channel,
        payload={'channel': channel, 'reward': reward},
    )
    if not claimed:
        await db.rollback()
        return SubscriptionClaimResult(credited=False, reason='already_claimed')

    await credit_tokens(db, user_id, reward)
    await db.commit()
    logger.info('Subscription reward credited', user_id=user_id, channel=channel, reward=reward)

    await gateway.send_message(user_id, f'Тебе начислено +{reward} златников за подписку на @{channel}')
    return SubscriptionClaimResult(credited=True, reward=reward)


async def run_daily_distribution(
    db: AsyncSession,
    day: date,
    gateway: TelegramGateway,
    *,
    notify: bool | None = None,
) -> DistributionResult:
    """Pay every ranked user of ``day``. Not guarded against re-runs: calling it twice pays twice."""
    rankings = await get_rankings(db, day)
    result = DistributionResult(day=day)

    for rank, entry in enumerate(rankings, start=1):
        amount = payout_for_rank(rank)
        await credit_tokens(db, entry.user_id, amount)
        add_daily_claim(
            db,
            user_id=entry.user_id,
            payload={'day': day.isoformat(), 'rank': rank, 'amount': amount},
        )
        result.payouts.append(Payout(user_id=entry.user_id, rank=rank, score=entry.score, amount=amount))

    await set_meta(db, LAST_RESET_KEY, datetime.now(UTC).isoformat())
    # replaying an older day must not move the scheduler marker back
    await advance_last_distributed_day(db, day)
    await db.commit()
    logger.info(
        'Daily distribution finished',
        day=day.isoformat(),
        credited_users=len(result.payouts),
        total_amount=result.total_amount,
    )

    if settings.DAILY_PAYOUT_NOTIFY if notify is None else notify:
        for payout in result.payouts:
            await gateway.send_message(
                payout.user_id,
                f'Итоги дня {day.isoformat()}: ты на {payout.rank} месте, +{payout.amount} златников',
            )
    return result
