from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.bot import create_bot, create_dispatcher
from app.config import settings
from app.database.database import AsyncSessionLocal, close_db, init_db
from app.external.telegram import TelegramGateway
from app.services.daily_reset_service import DailyResetService

from .routes import admin, game, rewards, telegram


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    bot = create_bot()
    gateway = TelegramGateway(bot)
    reset_service = DailyResetService(AsyncSessionLocal, gateway)

    app.state.bot = bot
    app.state.dispatcher = create_dispatcher()
    app.state.telegram_gateway = gateway
    app.state.daily_reset_service = reset_service

    if settings.RESET_SCHEDULER_ENABLED:
        reset_service.start()
    if not settings.ADMIN_API_TOKEN:
        logger.warning('ADMIN_API_TOKEN is not set: admin endpoints are unprotected')
    logger.info('Ensure BOT_TOKEN is set and the webhook points to /telegram_webhook', server_url=settings.SERVER_URL)

    try:
        yield
    finally:
        await reset_service.stop()
        await gateway.close()
        await close_db()


def create_web_api_app(*, with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(title='Desyatka game API', lifespan=lifespan if with_lifespan else None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    app.include_router(telegram.router)
    app.include_router(game.router)
    app.include_router(rewards.router)
    app.include_router(admin.router)

    @app.get('/health')
    async def health():
        return {'status': 'ok'}

    return app
