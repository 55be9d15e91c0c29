"""
Test Configuration

This module provides:
- Environment setup that must happen before application modules read settings
- Kvrocks isolation with worker-specific key prefixes
- A test log directory for the loguru file sink

Architecture:
- Unit tests (test/**/unit/): in-memory seat store, recording notifier and
  in-memory watch-list storage from test/service/study_space/conftest.py
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings and key_str_generator read the environment at import time
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['KVROCKS_KEY_PREFIX'] = 'test_'
    else:
        os.environ['KVROCKS_KEY_PREFIX'] = f'test_{worker_id}_'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    # Unit tests never talk to a real seat store
    os.environ['SEAT_STORE_BACKEND'] = 'in_memory'
    os.environ['DEV_USER_ID'] = 'test-user'
    os.environ['WATCH_LIST_PATH'] = str(test_log_dir / 'study_space.json')


# Call immediately to set env vars before any imports
_early_setup_test_environment()
