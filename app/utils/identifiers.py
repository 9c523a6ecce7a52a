"""Parsing of user ids and channel names arriving from clients."""

# BigInteger columns
MAX_USER_ID = 2**63 - 1

_CHANNEL_LINK_PREFIXES = ('https://t.me/', 'http://t.me/', 't.me/')


def normalize_channel_username(raw: str | None) -> str:
    """``@News``, ``news`` and ``https://t.me/News`` all become ``news``."""
    value = (raw or '').strip()
    lowered = value.lower()
    for prefix in _CHANNEL_LINK_PREFIXES:
        if lowered.startswith(prefix):
            value = value[len(prefix):]
            break
    return value.lstrip('@').strip().lower()


def parse_user_id(raw: str | None) -> int | None:
    """Lenient query-string id: anything that is not a positive storable integer reads as absent."""
    if raw is None:
        return None
    try:
        user_id = int(raw.strip())
    except ValueError:
        return None
    if user_id <= 0 or user_id > MAX_USER_ID:
        return None
    return user_id
