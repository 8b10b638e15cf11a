"""
Cancellable periodic pulse for the highlighted event.

The pulse alternates between fixed magnitudes (a ring radius for the
renderer) on a fixed interval. It is a scheduled job re-armed after each
tick, so stopping it cancels the single pending timer handle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with asyncio's ``call_later`` signature."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


@dataclass
class PulseConfig:
    """Pulse timing and magnitudes."""

    interval_sec: float = 0.65
    magnitudes: Tuple[float, ...] = (13.0, 11.0)
    base: float = 12.0
    """Magnitude reported before the first tick."""

    def __post_init__(self):
        if self.interval_sec <= 0:
            raise ValueError(f"interval_sec must be positive, got {self.interval_sec}")
        self.magnitudes = tuple(float(m) for m in self.magnitudes)
        if len(self.magnitudes) < 2:
            raise ValueError("pulse needs at least two magnitudes to alternate between")

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "PulseConfig":
        section = profile.get("pulse", {}) or {}
        defaults = cls()
        return cls(
            interval_sec=float(section.get("interval_sec", defaults.interval_sec)),
            magnitudes=tuple(section.get("magnitudes", defaults.magnitudes)),
            base=float(section.get("base", defaults.base)),
        )


class PulseTimer:
    """Periodic two-phase signal with at most one pending timer."""

    def __init__(
        self,
        config: Optional[PulseConfig] = None,
        on_tick: Optional[Callable[[float], None]] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.config = config or PulseConfig()
        self._on_tick = on_tick
        self._scheduler = scheduler
        self._handle: Optional[TimerHandle] = None
        self._running = False
        self._phase = 0
        self._value: Optional[float] = None
        self.start_count = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def value(self) -> Optional[float]:
        """Current magnitude, or None while stopped."""
        return self._value

    def _resolve_scheduler(self) -> Optional[Scheduler]:
        if self._scheduler is not None:
            return self._scheduler
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def start(self) -> bool:
        """Start pulsing; a no-op while already running."""
        if self._running:
            return False
        scheduler = self._resolve_scheduler()
        if scheduler is None:
            logger.warning("No running event loop; pulse not started")
            return False

        self._running = True
        self._phase = 0
        self._value = self.config.base
        self.start_count += 1
        self._arm(scheduler)
        logger.debug("Pulse started")
        return True

    def _arm(self, scheduler: Scheduler) -> None:
        self._handle = scheduler.call_later(self.config.interval_sec, self._tick, scheduler)

    def _tick(self, scheduler: Scheduler) -> None:
        self._handle = None
        if not self._running:
            return

        magnitudes = self.config.magnitudes
        self._value = magnitudes[self._phase % len(magnitudes)]
        self._phase += 1
        if self._on_tick is not None:
            self._on_tick(self._value)

        # on_tick may have stopped us
        if self._running:
            self._arm(scheduler)

    def stop(self) -> None:
        """Cancel the pending tick; idempotent."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._running:
            logger.debug("Pulse stopped")
        self._running = False
        self._value = None


__all__ = ["PulseConfig", "PulseTimer", "Scheduler", "TimerHandle"]
