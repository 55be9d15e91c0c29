"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from typing import Optional

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings, is_placeholder
from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl
from src.platform.state.kvrocks_client import kvrocks_client
from src.service.study_space.app.study_space_reconciler import StudySpaceReconciler
from src.service.study_space.driven_adapter.broadcast_seat_notifier import BroadcastSeatNotifier
from src.service.study_space.driven_adapter.file_watch_list_storage import FileWatchListStorage
from src.service.study_space.driven_adapter.in_memory_seat_store import InMemorySeatStore
from src.service.study_space.driven_adapter.kvrocks_seat_store import KvrocksSeatStore


def _seat_store_backend(settings: Settings) -> str:
    return 'in_memory' if settings.use_in_memory_store else 'kvrocks'


def _session_token(settings: Settings) -> Optional[str]:
    token = settings.SESSION_TOKEN.get_secret_value() if settings.SESSION_TOKEN else None
    return None if is_placeholder(token) else token


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Notifications fan-out to SSE streams
    event_broadcaster = providers.Singleton(InMemoryEventBroadcasterImpl, max_buffer_size=50)

    # Seat store: Kvrocks in deployments, seeded in-memory store for local development
    kvrocks_seat_store = providers.Singleton(
        KvrocksSeatStore,
        client=providers.Object(kvrocks_client),
        table=config_service.provided.SEAT_TABLE,
        session_token=providers.Callable(_session_token, config_service),
        buffer_size=config_service.provided.SUBSCRIPTION_BUFFER_SIZE,
    )
    in_memory_seat_store = providers.Singleton(
        InMemorySeatStore,
        user_id=config_service.provided.DEV_USER_ID,
        buffer_size=config_service.provided.SUBSCRIPTION_BUFFER_SIZE,
    )
    seat_store = providers.Selector(
        providers.Callable(_seat_store_backend, config_service),
        kvrocks=kvrocks_seat_store,
        in_memory=in_memory_seat_store,
    )

    watch_list_storage = providers.Singleton(
        FileWatchListStorage,
        path=config_service.provided.WATCH_LIST_PATH,
        namespace=config_service.provided.WATCH_LIST_NAMESPACE,
    )
    seat_notifier = providers.Singleton(BroadcastSeatNotifier, broadcaster=event_broadcaster)

    # One reconciler per process: the page of the signed-in user
    study_space_reconciler = providers.Singleton(
        StudySpaceReconciler,
        seat_store=seat_store,
        watch_list_storage=watch_list_storage,
        notifier=seat_notifier,
    )


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()
