"""
Environment-driven settings for the fill simulator.

All values have defaults so nothing is required; invalid values fail at load time.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import time

# Regular session bounds, HH:MM in exchange local time.
SESSION_OPEN_ENV = "FILLSIM_SESSION_OPEN"
SESSION_CLOSE_ENV = "FILLSIM_SESSION_CLOSE"
# Default slippage: an absolute price amount, or basis points of the last price.
SLIPPAGE_ENV = "FILLSIM_SLIPPAGE"
SLIPPAGE_BPS_ENV = "FILLSIM_SLIPPAGE_BPS"


@dataclass(frozen=True)
class FillSettings:
    session_open: time = time(9, 30)
    session_close: time = time(16, 0)
    slippage: float = 0.0
    slippage_bps: float = 0.0


def _parse_time(name: str, raw: str) -> time:
    try:
        hour, minute = raw.strip().split(":")
        return time(int(hour), int(minute))
    except ValueError as exc:
        raise ValueError(f"{name} must be HH:MM, got {raw!r}") from exc


def _parse_amount(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a non-negative finite number, got {raw!r}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> FillSettings:
    """Build FillSettings from the environment (or the given mapping)."""
    env = os.environ if environ is None else environ
    defaults = FillSettings()
    settings = FillSettings(
        session_open=_parse_time(SESSION_OPEN_ENV, env[SESSION_OPEN_ENV]) if SESSION_OPEN_ENV in env else defaults.session_open,
        session_close=_parse_time(SESSION_CLOSE_ENV, env[SESSION_CLOSE_ENV]) if SESSION_CLOSE_ENV in env else defaults.session_close,
        slippage=_parse_amount(SLIPPAGE_ENV, env[SLIPPAGE_ENV]) if SLIPPAGE_ENV in env else defaults.slippage,
        slippage_bps=_parse_amount(SLIPPAGE_BPS_ENV, env[SLIPPAGE_BPS_ENV]) if SLIPPAGE_BPS_ENV in env else defaults.slippage_bps,
    )
    if settings.session_open >= settings.session_close:
        raise ValueError(f"{SESSION_OPEN_ENV} must be before {SESSION_CLOSE_ENV}")
    if settings.slippage and settings.slippage_bps:
        raise ValueError(f"set only one of {SLIPPAGE_ENV} and {SLIPPAGE_BPS_ENV}")
    return settings
