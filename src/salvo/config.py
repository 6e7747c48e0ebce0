"""Game settings loaded from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field

from salvo.ai.opponent import Strategy
from salvo.engine.fleet import MAX_PLACEMENT_ATTEMPTS
from salvo.telemetry.config import env_flag


class GameSettings(BaseModel):
    """Rules and computer-opponent knobs for one match."""

    allow_adjacent: bool = False
    ai_strategy: Strategy = Strategy.SMART
    ai_thinking_delay: float = Field(default=0.0, ge=0.0)
    max_placement_attempts: int = Field(default=MAX_PLACEMENT_ATTEMPTS, ge=1)

    @classmethod
    def from_env(cls, **overrides: Any) -> "GameSettings":
        """Build settings from ``SALVO_*`` variables; ``overrides`` win over the environment."""

        data: Dict[str, Any] = {}
        allow_adjacent = env_flag("SALVO_ALLOW_ADJACENT")
        if allow_adjacent is not None:
            data["allow_adjacent"] = allow_adjacent

        raw = {
            "ai_strategy": os.getenv("SALVO_AI_STRATEGY"),
            "ai_thinking_delay": os.getenv("SALVO_AI_THINKING_DELAY"),
            "max_placement_attempts": os.getenv("SALVO_MAX_PLACEMENT_ATTEMPTS"),
        }
        data.update({key: value.strip().lower() for key, value in raw.items() if value})
        data.update(overrides)
        return cls(**data)


@lru_cache(maxsize=1)
def load_settings() -> GameSettings:
    """Load and cache game settings from the environment."""

    return GameSettings.from_env()
