"""Core application utilities."""

from .clock import Clock, FrozenClock, SystemClock, ensure_utc
from .config import Settings, get_settings
from .database import (
    async_session_factory,
    build_engine,
    build_session_factory,
    close_db,
    engine,
    get_session,
    get_session_context,
    init_db,
)
from .dependencies import ClockDep, SessionDep, SettingsDep, get_clock

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Clock
    "Clock",
    "SystemClock",
    "FrozenClock",
    "ensure_utc",
    # Database
    "engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    # Dependencies
    "get_clock",
    "ClockDep",
    "SessionDep",
    "SettingsDep",
]
