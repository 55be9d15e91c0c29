"""
Study Space FastAPI Application

Mounts the seat reconciler for the signed-in user and serves the seat map page.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.di import container
from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import kvrocks_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Study Space] Starting up...')

    config = container.config_service()
    use_kvrocks = not config.use_in_memory_store
    if use_kvrocks:
        # Fail-fast
        await kvrocks_client.initialize()
        Logger.base.info('📡 [Study Space] Kvrocks initialized')
    else:
        Logger.base.warning(
            '⚠️ [Study Space] Seat store not configured, serving the seeded in-memory layout'
        )

    reconciler = container.study_space_reconciler()

    async with anyio.create_task_group() as tg:
        # A failed mount leaves the page up with its sync error
        if await reconciler.mount(task_group=tg):
            Logger.base.info('✅ [Study Space] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Study Space] Shutting down...')
        reconciler.unmount()
        tg.cancel_scope.cancel()

    if use_kvrocks:
        await kvrocks_client.disconnect()
        Logger.base.info('📡 [Study Space] Kvrocks disconnected')

    Logger.base.info('👋 [Study Space] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
