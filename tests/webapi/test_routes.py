from zoneinfo import ZoneInfo

import httpx
import pytest
from aiogram import Bot

from app.bot import create_dispatcher
from app.config import settings
from app.database.crud.user import get_balance, get_or_create_user, get_user_by_id, link_referrer
from app.external.telegram import MembershipCheckError
from app.services.daily_reset_service import DailyResetService
from app.utils.game_day import current_game_day
from app.webapi.app import create_web_api_app
from app.webapi.dependencies import (
    get_bot,
    get_daily_reset_service,
    get_dispatcher,
    get_telegram_gateway,
    get_web_db,
)


@pytest.fixture
def app(session_factory, gateway, monkeypatch):
    monkeypatch.setattr(settings, 'ADMIN_API_TOKEN', None)
    web_app = create_web_api_app(with_lifespan=False)

    async def override_db():
        async with session_factory() as session:
            yield session

    reset_service = DailyResetService(session_factory, gateway, reset_hour=6, tz=ZoneInfo('UTC'))
    web_app.dependency_overrides[get_web_db] = override_db
    web_app.dependency_overrides[get_telegram_gateway] = lambda: gateway
    web_app.dependency_overrides[get_daily_reset_service] = lambda: reset_service
    web_app.dependency_overrides[get_bot] = lambda: None
    web_app.dependency_overrides[get_dispatcher] = lambda: None
    return web_app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url='http://test') as http:
        yield http


async def test_health(client):
    response = await client.get('/health')

    assert response.status_code == 200
    assert response.json() == {'status': 'ok'}


async def test_submit_score_and_leaderboard(client):
    await client.post('/submit_score', json={'user_id': 1, 'name': 'vasya', 'score': 30})
    response = await client.post('/submit_score', json={'user_id': 1, 'name': 'vasya', 'score': 10})
    await client.post('/submit_score', json={'user_id': 2, 'name': 'petya', 'score': 50})

    assert response.json() == {'ok': True, 'best_score': 30}

    board = (await client.get('/leaderboard', params={'user_id': 1})).json()
    assert board['top10'] == [
        {'user_id': 2, 'score': 50, 'name': 'petya'},
        {'user_id': 1, 'score': 30, 'name': 'vasya'},
    ]
    assert board['rank'] == 2
    assert board['day'] == current_game_day().isoformat()


@pytest.mark.parametrize('score', ['12', 1.5, True, None])
async def test_submit_score_rejects_non_integer_scores(client, score):
    response = await client.post('/submit_score', json={'user_id': 1, 'score': score})

    assert response.status_code == 422
    assert (await client.get('/my_tokens', params={'user_id': 1})).json() == {'tokens': 0}


@pytest.mark.parametrize(
    'payload',
    [
        {'user_id': 1, 'score': 2**63},
        {'user_id': 1, 'score': 2**31},
        {'user_id': 1, 'score': -(2**31) - 1},
        {'user_id': 2**63, 'score': 5},
    ],
)
async def test_submit_score_rejects_values_outside_storable_range(client, payload):
    response = await client.post('/submit_score', json=payload)

    assert response.status_code == 422
    assert (await client.get('/leaderboard')).json()['top10'] == []


async def test_submit_score_accepts_range_edges(client):
    response = await client.post('/submit_score', json={'user_id': 2**63 - 1, 'score': 2**31 - 1})

    assert response.json() == {'ok': True, 'best_score': 2**31 - 1}


async def test_leaderboard_without_user(client):
    board = (await client.get('/leaderboard')).json()

    assert board['top10'] == []
    assert board['rank'] is None


@pytest.mark.parametrize('user_id', ['abc', '0', str(2**64)])
async def test_leaderboard_with_unparseable_user_is_anonymous(client, user_id):
    await client.post('/submit_score', json={'user_id': 1, 'score': 5})

    response = await client.get('/leaderboard', params={'user_id': user_id})

    assert response.status_code == 200
    assert response.json()['rank'] is None
    assert len(response.json()['top10']) == 1


@pytest.mark.parametrize('user_id', ['abc', '0', str(2**64)])
async def test_my_tokens_with_unparseable_user_id(client, user_id):
    response = await client.get('/my_tokens', params={'user_id': user_id})

    assert response.status_code == 400


async def test_my_tokens_requires_user_id(client):
    response = await client.get('/my_tokens')

    assert response.status_code == 400


async def test_my_tokens_of_unknown_user_is_zero(client):
    response = await client.get('/my_tokens', params={'user_id': 404})

    assert response.json() == {'tokens': 0}


async def test_claim_invite_flow(client, db):
    await get_or_create_user(db, 1, 'inviter')
    await get_or_create_user(db, 2, 'friend')
    await link_referrer(db, 2, 1)
    await db.commit()

    first = await client.post('/claim_invite', json={'user_id': 2})
    second = await client.post('/claim_invite', json={'user_id': 2})

    assert first.json() == {'credited': True}
    assert second.json() == {'credited': False}
    assert (await client.get('/my_tokens', params={'user_id': 1})).json() == {'tokens': 500}


async def test_claim_invite_registers_user_without_referrer(client, db):
    response = await client.post('/claim_invite', json={'user_id': 3, 'name': 'solo'})

    assert response.json() == {'credited': False}
    user = await get_user_by_id(db, 3)
    assert user.display_name == 'solo'


async def test_claim_subscribe_flow(client, gateway, db):
    gateway.is_channel_member.return_value = False
    refused = await client.post('/claim_subscribe', json={'user_id': 5, 'channel': '@news'})
    gateway.is_channel_member.return_value = True
    credited = await client.post('/claim_subscribe', json={'user_id': 5, 'channel': '@news'})
    repeated = await client.post('/claim_subscribe', json={'user_id': 5, 'channel': 'news'})

    assert refused.json() == {'credited': False, 'reason': 'not_member'}
    assert credited.json() == {'credited': True, 'reward': 700}
    assert repeated.json() == {'credited': False, 'reason': 'already_claimed'}
    assert await get_balance(db, 5) == 700


async def test_claim_subscribe_reports_telegram_outage(client, gateway):
    gateway.is_channel_member.side_effect = MembershipCheckError('timeout')

    response = await client.post('/claim_subscribe', json={'user_id': 5, 'channel': 'news'})

    assert response.status_code == 503
    assert response.json() == {'detail': 'telegram_api_error'}


async def test_add_channel_and_list(client):
    await client.post('/admin/add_channel', json={'username': '@News'})
    await client.post('/admin/add_channel', json={'username': 'memes', 'reward': 300})
    await client.post('/admin/add_channel', json={'username': 'news', 'reward': 900})

    response = await client.get('/channels')

    channels = {c['username']: c['reward'] for c in response.json()['channels']}
    assert channels == {'news': 900, 'memes': 300}


async def test_admin_token_is_enforced_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, 'ADMIN_API_TOKEN', 'secret')

    denied = await client.post('/admin/add_channel', json={'username': 'news'})
    wrong = await client.post('/admin/add_channel', json={'username': 'news'}, headers={'X-Admin-Token': 'nope'})
    allowed = await client.post('/admin/add_channel', json={'username': 'news'}, headers={'X-Admin-Token': 'secret'})

    assert denied.status_code == 403
    assert wrong.status_code == 403
    assert allowed.json() == {'ok': True}


async def test_run_reset_for_explicit_day(client, db):
    await client.post('/submit_score', json={'user_id': 1, 'score': 9})
    await client.post('/submit_score', json={'user_id': 2, 'score': 3})
    today = current_game_day().isoformat()

    response = await client.post('/admin/run_reset', json={'day': today})

    assert response.json() == {'ok': True, 'day': today, 'credited_users': 2, 'total_amount': 170}
    assert await get_balance(db, 1) == 100
    assert await get_balance(db, 2) == 70


async def test_run_reset_without_body_pays_closed_day(client):
    response = await client.post('/admin/run_reset')

    assert response.status_code == 200
    assert response.json()['credited_users'] == 0


async def test_webhook_is_acknowledged_without_bot(client):
    response = await client.post('/telegram_webhook', json={'update_id': 1})

    assert response.status_code == 200
    assert response.json() == {'ok': True}


async def test_webhook_start_registers_referral(app, client, db):
    bot = Bot(token='123456:TEST')
    app.dependency_overrides[get_bot] = lambda: bot
    app.dependency_overrides[get_dispatcher] = create_dispatcher
    update = {
        'update_id': 10,
        'message': {
            'message_id': 1,
            'date': 1767225600,
            'chat': {'id': 22, 'type': 'private'},
            'from': {'id': 22, 'is_bot': False, 'first_name': 'Masha', 'username': 'masha'},
            'text': '/start 11',
            'entities': [{'type': 'bot_command', 'offset': 0, 'length': 6}],
        },
    }

    try:
        response = await client.post('/telegram_webhook', json=update)
    finally:
        await bot.session.close()

    assert response.json() == {'ok': True}
    user = await get_user_by_id(db, 22)
    assert user.display_name == 'masha'
    assert user.referrer_id == 11
    assert user.tokens == 0
