"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, Field


NumT = TypeVar("NumT", int, float)


def _env_number(name: str, default: NumT, cast: type[NumT]) -> NumT:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


class HubConfig(BaseModel):
    """Configuration for the interview hub."""

    db_path: Path = Path(".intask") / "interviews.db"
    default_duration_minutes: int = Field(default=30, ge=15, le=180)
    max_pending_requests: int = Field(default=3, ge=1)
    default_lead_hours: int = Field(default=24, ge=0)
    busy_timeout_seconds: float = Field(default=5.0, gt=0)

    @classmethod
    def from_env(cls) -> HubConfig:
        """Load config from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        db_path = os.environ.get("INTASK_DB_PATH", "").strip()
        return cls(
            db_path=Path(db_path) if db_path else cls.model_fields["db_path"].default,
            default_duration_minutes=_env_number("INTASK_DEFAULT_DURATION", 30, int),
            max_pending_requests=_env_number("INTASK_MAX_PENDING_REQUESTS", 3, int),
            default_lead_hours=_env_number("INTASK_DEFAULT_LEAD_HOURS", 24, int),
            busy_timeout_seconds=_env_number("INTASK_BUSY_TIMEOUT", 5.0, float),
        )
