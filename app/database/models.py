from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func


DEFAULT_DISPLAY_NAME = 'Игрок'

# range of the 32-bit Integer columns (scores, channel rewards)
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def _aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is timezone-aware (SQLite hands back naive values)."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class AwareDateTime(TypeDecorator):
    """DateTime that auto-converts naive values to UTC-aware on load from DB."""

    impl = DateTime
    cache_ok = True

    def __init__(self):
        super().__init__(timezone=True)

    def process_result_value(self, value, dialect):
        if value is not None and isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


Base = declarative_base()


class ClaimType(Enum):
    REFERRAL = 'referral'
    SUBSCRIPTION = 'subscription'
    DAILY = 'daily'


class User(Base):
    __tablename__ = 'users'

    # Telegram user id, assigned by the platform
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    display_name = Column(String(255), nullable=True)
    tokens = Column(BigInteger, nullable=False, default=0)
    created_at = Column(AwareDateTime(), default=func.now(), nullable=False)
    # No FK: a referral link can be stored before the referrer ever contacts us
    referrer_id = Column(BigInteger, nullable=True, index=True)
    referral_confirmed = Column(Boolean, nullable=False, default=False)

    daily_scores = relationship('DailyScore', back_populates='user')
    reward_claims = relationship('RewardClaim', back_populates='user')

    def __repr__(self):
        return f'<User id={self.id} tokens={self.tokens}>'


class DailyScore(Base):
    __tablename__ = 'daily_scores'
    __table_args__ = (
        UniqueConstraint('user_id', 'day', name='uq_daily_scores_user_day'),
        Index('ix_daily_scores_day_score', 'day', 'score'),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    day = Column(Date, nullable=False)
    score = Column(Integer, nullable=False)
    updated_at = Column(AwareDateTime(), default=func.now(), nullable=False)

    user = relationship('User', back_populates='daily_scores')


class Channel(Base):
    __tablename__ = 'channels'

    username = Column(String(255), primary_key=True)
    reward = Column(Integer, nullable=False, default=700)
    created_at = Column(AwareDateTime(), default=func.now(), nullable=False)


class RewardClaim(Base):
    __tablename__ = 'reward_claims'
    __table_args__ = (
        # claim_key is NULL for daily payouts, so those never collide
        UniqueConstraint('user_id', 'claim_type', 'claim_key', name='uq_reward_claims_user_type_key'),
        Index('ix_reward_claims_user_type', 'user_id', 'claim_type'),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    claim_type = Column(String(20), nullable=False)
    claim_key = Column(String(255), nullable=True)
    payload = Column(JSON, nullable=True, default=dict)
    created_at = Column(AwareDateTime(), default=func.now(), nullable=False)

    user = relationship('User', back_populates='reward_claims')

    def __repr__(self):
        return f'<RewardClaim user={self.user_id} type={self.claim_type} key={self.claim_key}>'


class Meta(Base):
    __tablename__ = 'meta'

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(AwareDateTime(), default=func.now(), onupdate=func.now(), nullable=False)
