"""Study Space Interfaces"""

from src.service.study_space.app.interface.i_seat_notifier import ISeatNotifier
from src.service.study_space.app.interface.i_seat_store import ISeatStore
from src.service.study_space.app.interface.i_watch_list_storage import IWatchListStorage

__all__ = ['ISeatNotifier', 'ISeatStore', 'IWatchListStorage']
