from datetime import date

from pydantic import BaseModel, Field, StrictInt

from app.database.models import INT32_MAX, INT32_MIN
from app.utils.identifiers import MAX_USER_ID


class SubmitScoreRequest(BaseModel):
    user_id: int = Field(..., gt=0, le=MAX_USER_ID)
    name: str | None = Field(default=None, max_length=255)
    score: StrictInt = Field(..., ge=INT32_MIN, le=INT32_MAX)


class SubmitScoreResponse(BaseModel):
    ok: bool = True
    best_score: int


class LeaderboardEntry(BaseModel):
    user_id: int
    score: int
    name: str


class LeaderboardResponse(BaseModel):
    top10: list[LeaderboardEntry] = Field(default_factory=list)
    rank: int | None = None
    day: date


class TokensResponse(BaseModel):
    tokens: int


class ClaimInviteRequest(BaseModel):
    user_id: int = Field(..., gt=0, le=MAX_USER_ID)
    name: str | None = Field(default=None, max_length=255)


class ClaimInviteResponse(BaseModel):
    credited: bool


class ClaimSubscribeRequest(BaseModel):
    user_id: int = Field(..., gt=0, le=MAX_USER_ID)
    channel: str = Field(..., min_length=1, max_length=255)


class ClaimSubscribeResponse(BaseModel):
    credited: bool
    reward: int | None = None
    reason: str | None = None


class ChannelInfo(BaseModel):
    username: str
    reward: int


class ChannelsResponse(BaseModel):
    channels: list[ChannelInfo] = Field(default_factory=list)


class AddChannelRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    reward: int | None = Field(default=None, ge=0, le=INT32_MAX)


class OkResponse(BaseModel):
    ok: bool = True


class RunResetRequest(BaseModel):
    day: date | None = None


class RunResetResponse(BaseModel):
    ok: bool = True
    day: date
    credited_users: int
    total_amount: int
