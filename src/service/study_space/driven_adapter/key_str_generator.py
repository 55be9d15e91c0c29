"""
Key String Generator

Kvrocks keys and channels for the seat table.
"""

import os


def _get_key_prefix() -> str:
    """Read at call time so tests can isolate keys after modules are imported."""
    return os.getenv('KVROCKS_KEY_PREFIX', '')


def _make_key(key: str) -> str:
    return f'{_get_key_prefix()}{key}'


def make_seat_key(*, table: str, seat_id: str) -> str:
    """Hash holding one seat row"""
    return _make_key(f'{table}:seat:{seat_id}')


def make_seat_index_key(*, table: str) -> str:
    """Sorted set of seat ids scored by provisioning order"""
    return _make_key(f'{table}:ids')


def make_seat_channel(*, table: str) -> str:
    """Pub/Sub channel carrying changed rows"""
    return _make_key(f'{table}:changes')


def make_session_key(*, token: str) -> str:
    """Session token -> user id"""
    return _make_key(f'session:{token}')
