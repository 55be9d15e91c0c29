from src.service.study_space.app.dto.study_space_dto import (
    BookingOutcome,
    StudySpaceSnapshot,
    WatchOutcome,
)

__all__ = ['BookingOutcome', 'StudySpaceSnapshot', 'WatchOutcome']
