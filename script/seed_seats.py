#!/usr/bin/env python3
"""
Seat Seed Script
Provision the LRC seat layout into Kvrocks

Features:
1. Seats - Write every LRC seat as Available, in layout order
2. Session - Optionally map SESSION_TOKEN to SEED_USER_ID so the page is signed in

Environment:
- RESET_SEATS=1 overwrites existing rows (otherwise only missing seats are added)
- SESSION_TOKEN / SEED_USER_ID register a dev sign-in
"""

import asyncio
import os

from src.platform.config.core_setting import is_placeholder, settings
from src.platform.state.kvrocks_client import kvrocks_client
from src.service.study_space.domain.entity.seat_entity import build_lrc_layout
from src.service.study_space.driven_adapter.key_str_generator import make_session_key
from src.service.study_space.driven_adapter.kvrocks_seat_store import KvrocksSeatStore


async def seed_seats(store: KvrocksSeatStore, *, reset: bool) -> None:
    layout = build_lrc_layout()
    print(f'🪑 Provisioning {len(layout)} seats into {store.table}...')
    written = await store.provision(layout, reset=reset)
    print(f'   ✅ Wrote {written} seat(s), skipped {len(layout) - written}')


async def register_session() -> None:
    token = settings.SESSION_TOKEN.get_secret_value() if settings.SESSION_TOKEN else None
    user_id = os.getenv('SEED_USER_ID')
    if is_placeholder(token) or not user_id:
        print('👤 No SESSION_TOKEN / SEED_USER_ID, skipping sign-in')
        return

    await kvrocks_client.get_client().set(make_session_key(token=token), user_id)
    print(f'   ✅ Session registered for user {user_id}')


async def verify_data(store: KvrocksSeatStore) -> None:
    print('🔍 Verifying seeded data...')
    seats = await store.fetch_all()
    occupied = sum(1 for seat in seats if seat.is_occupied)
    print(f'   Seat count: {len(seats)} ({occupied} occupied)')


async def main():
    print('🌱 Starting seat seeding...')
    print('=' * 50)

    try:
        await kvrocks_client.initialize()
        print('📡 Kvrocks connection pool initialized')

        store = KvrocksSeatStore(client=kvrocks_client, table=settings.SEAT_TABLE)
        await seed_seats(store, reset=os.getenv('RESET_SEATS') == '1')
        await register_session()
        await verify_data(store)

        print('=' * 50)
        print('🌱 Seat seeding completed!')

    except Exception as e:
        print(f'❌ Seeding failed: {e}')
        exit(1)

    finally:
        await kvrocks_client.disconnect()


if __name__ == '__main__':
    asyncio.run(main())
