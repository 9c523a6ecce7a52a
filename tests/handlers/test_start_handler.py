from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.database.crud.user import get_user_by_id
from app.handlers.start import handle_start
from app.services.user_service import display_name_for, parse_referrer_param, register_start


@pytest.mark.parametrize(
    ('param', 'expected'),
    [('42', 42), (' 42 ', 42), ('7', None), ('-3', None), ('0', None), ('abc', None), ('', None), (None, None)],
)
def test_parse_referrer_param(param, expected):
    assert parse_referrer_param(param, user_id=7) == expected


def test_display_name_prefers_username():
    assert display_name_for('vasya', 'Vasily') == 'vasya'
    assert display_name_for(None, 'Vasily') == 'Vasily'
    assert display_name_for(None, None) == 'Игрок'


async def test_register_start_links_referrer_once(db):
    user = await register_start(db, user_id=2, display_name='friend', start_param='1')
    again = await register_start(db, user_id=2, display_name='renamed', start_param='3')

    assert user.referrer_id == 1
    assert again.referrer_id == 1
    assert again.display_name == 'friend'
    assert again.referral_confirmed is False
    assert again.tokens == 0


async def test_register_start_ignores_self_referral(db):
    user = await register_start(db, user_id=5, display_name='me', start_param='5')

    assert user.referrer_id is None


async def test_handle_start_uses_message_sender(db):
    message = SimpleNamespace(from_user=SimpleNamespace(id=11, username=None, first_name='Petya'))
    command = SimpleNamespace(args='10')

    await handle_start(message, command, db)

    user = await get_user_by_id(db, 11)
    assert user.display_name == 'Petya'
    assert user.referrer_id == 10


async def test_handle_start_rolls_back_on_failure(monkeypatch):
    monkeypatch.setattr('app.handlers.start.register_start', AsyncMock(side_effect=RuntimeError('db down')))
    db = AsyncMock()
    message = SimpleNamespace(from_user=SimpleNamespace(id=11, username='p', first_name=None))

    await handle_start(message, SimpleNamespace(args=None), db)

    db.rollback.assert_awaited_once()
