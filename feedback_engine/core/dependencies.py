"""FastAPI dependencies shared by the routers."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .clock import Clock, SystemClock
from .config import Settings, get_settings
from .database import get_session


@lru_cache
def get_clock() -> Clock:
    """Process-wide clock; overridden in tests."""
    return SystemClock()


SessionDep = Annotated[AsyncSession, Depends(get_session)]
ClockDep = Annotated[Clock, Depends(get_clock)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
