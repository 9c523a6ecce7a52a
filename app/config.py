from zoneinfo import ZoneInfo

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BOT_TOKEN_PLACEHOLDER = '<PUT_YOUR_BOT_TOKEN_HERE>'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    BOT_TOKEN: str = BOT_TOKEN_PLACEHOLDER
    SERVER_URL: str = 'https://desyatka-production.up.railway.app'

    DATABASE_URL: str = 'sqlite+aiosqlite:///./game.db'
    DATABASE_ECHO: bool = False

    WEB_API_HOST: str = '0.0.0.0'
    PORT: int = 3000
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ['*'])
    ADMIN_API_TOKEN: str | None = None

    RESET_HOUR: int = Field(default=6, ge=0, le=23)
    GAME_TIMEZONE: str = 'UTC'
    RESET_SCHEDULER_ENABLED: bool = True

    REFERRAL_REWARD: int = Field(default=500, ge=0)
    DEFAULT_CHANNEL_REWARD: int = Field(default=700, ge=0)
    DAILY_PAYOUT_NOTIFY: bool = True

    LOG_LEVEL: str = 'INFO'
    LOG_FORMAT: str = 'console'

    @field_validator('GAME_TIMEZONE')
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        ZoneInfo(value)
        return value

    @field_validator('LOG_FORMAT')
    @classmethod
    def _validate_log_format(cls, value: str) -> str:
        value = value.lower().strip()
        if value not in ('console', 'json'):
            raise ValueError('LOG_FORMAT must be "console" or "json"')
        return value

    def is_bot_configured(self) -> bool:
        token = (self.BOT_TOKEN or '').strip()
        return bool(token) and not token.startswith('<PUT')

    def get_game_timezone(self) -> ZoneInfo:
        return ZoneInfo(self.GAME_TIMEZONE)


settings = Settings()
