"""Single highlighted event and the pulse that accompanies it."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .pulse import PulseConfig, PulseTimer, Scheduler

logger = logging.getLogger(__name__)


class SelectionController:
    """
    Tracks at most one selected event id.

    The selection is a back-reference: it may point at an event outside the
    current filter. The pulse only runs while :meth:`resolve` reports the
    selection as a visible standalone point.
    """

    def __init__(
        self,
        pulse_config: Optional[PulseConfig] = None,
        on_pulse: Optional[Callable[[float], None]] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self._selected_id: Optional[str] = None
        self.pulse = PulseTimer(pulse_config, on_tick=on_pulse, scheduler=scheduler)

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def pulse_value(self) -> Optional[float]:
        return self.pulse.value

    def select(self, event_id: str) -> None:
        if event_id != self._selected_id:
            logger.debug(f"Selected event {event_id}")
        self._selected_id = event_id

    def clear(self) -> None:
        self._selected_id = None
        self.pulse.stop()

    def is_selected(self, event_id: Optional[str]) -> bool:
        return event_id is not None and event_id == self._selected_id

    def resolve(self, visible_ids: Iterable[str]) -> bool:
        """
        Start or stop the pulse depending on whether the selection is visible.

        Args:
            visible_ids: Ids of standalone points currently drawn

        Returns:
            True when the selection resolves to a visible point
        """
        visible = self._selected_id is not None and self._selected_id in set(visible_ids)
        if visible:
            self.pulse.start()
        else:
            self.pulse.stop()
        return visible

    def close(self) -> None:
        """Release the pulse timer for teardown."""
        self.clear()
