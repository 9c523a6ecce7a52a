from __future__ import annotations

import asyncio
from datetime import date, datetime
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database.crud.meta import get_last_distributed_day
from app.external.telegram import TelegramGateway
from app.services.reward_service import DistributionResult, run_daily_distribution
from app.utils.game_day import closed_game_day, next_reset_at


logger = structlog.get_logger(__name__)


class DailyResetService:
    """Fires the daily distribution once per game day at ``RESET_HOUR`` in the game timezone."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: TelegramGateway,
        *,
        reset_hour: int | None = None,
        tz: ZoneInfo | None = None,
    ):
        self._session_factory = session_factory
        self._gateway = gateway
        self.reset_hour = settings.RESET_HOUR if reset_hour is None else reset_hour
        self.tz = tz or settings.get_game_timezone()
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run_at(self, now: datetime | None = None) -> datetime:
        return next_reset_at(now, self.reset_hour, self.tz)

    def target_day(self, now: datetime | None = None) -> date:
        return closed_game_day(now, self.reset_hour, self.tz)

    async def run_scheduled(self, now: datetime | None = None) -> DistributionResult | None:
        """Distribute the most recently closed day unless it has already been paid."""
        day = self.target_day(now)
        async with self._session_factory() as db:
            last_day = await get_last_distributed_day(db)
            if last_day is not None and last_day >= day:
                logger.info('Daily distribution already done, skipping', day=day.isoformat())
                return None
            return await run_daily_distribution(db, day, self._gateway)

    async def run_manual(self, day: date | None = None) -> DistributionResult:
        """Operator escape hatch. No once-per-day guard."""
        target = day or self.target_day()
        logger.warning('Manual daily distribution triggered', day=target.isoformat())
        async with self._session_factory() as db:
            return await run_daily_distribution(db, target, self._gateway)

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info('Daily reset scheduler started', reset_hour=self.reset_hour, timezone=str(self.tz))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        try:
            await self.run_scheduled()
        except Exception:
            logger.exception('Daily distribution catch-up failed')

        while True:
            now = datetime.now(self.tz)
            run_at = self.next_run_at(now)
            logger.info('Next daily distribution scheduled', run_at=run_at.isoformat())
            await asyncio.sleep(max(0.0, (run_at - now).total_seconds()))
            try:
                await self.run_scheduled(run_at)
            except Exception:
                logger.exception('Daily distribution failed; use the manual trigger to retry', run_at=run_at.isoformat())
                await asyncio.sleep(10)
