import structlog
from aiogram import Bot
from aiogram.enums import ChatMemberStatus
from aiogram.exceptions import ClientDecodeError, TelegramAPIError, TelegramBadRequest


logger = structlog.get_logger(__name__)

SUBSCRIBED_STATUSES = (
    ChatMemberStatus.MEMBER,
    ChatMemberStatus.ADMINISTRATOR,
    ChatMemberStatus.CREATOR,
)


class TelegramNotConfiguredError(RuntimeError):
    pass


class MembershipCheckError(RuntimeError):
    pass


class TelegramGateway:
    """Outbound calls to the Telegram Bot API: notifications and channel membership checks."""

    def __init__(self, bot: Bot | None):
        self._bot = bot

    @property
    def is_configured(self) -> bool:
        return self._bot is not None

    async def send_message(self, user_id: int, text: str) -> bool:
        """Best-effort delivery. Never raises."""
        if self._bot is None:
            return False
        try:
            await self._bot.send_message(chat_id=user_id, text=text)
        except Exception as exc:
            logger.warning('Failed to send telegram notification', user_id=user_id, exc=exc)
            return False
        return True

    async def is_channel_member(self, channel: str, user_id: int) -> bool:
        if self._bot is None:
            raise TelegramNotConfiguredError('Bot token not configured')
        try:
            member = await self._bot.get_chat_member(chat_id=f'@{channel}', user_id=user_id)
        except TelegramBadRequest as exc:
            # Telegram answered ok=false (unknown user/chat, bot not in channel)
            logger.info('Membership check rejected by telegram', channel=channel, user_id=user_id, exc=exc)
            return False
        except (TelegramAPIError, ClientDecodeError) as exc:
            raise MembershipCheckError(str(exc)) from exc
        return member.status in SUBSCRIBED_STATUSES

    async def close(self) -> None:
        if self._bot is not None:
            await self._bot.session.close()
