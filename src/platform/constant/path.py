from pathlib import Path


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

# Log directory
LOG_DIR = BASE_DIR / 'logs'

# Lua scripts for the Kvrocks seat store
SEAT_STORE_LUA_DIR = (
    BASE_DIR / 'src' / 'service' / 'study_space' / 'driven_adapter' / 'lua_scripts'
)
