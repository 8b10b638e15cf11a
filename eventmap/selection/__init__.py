"""Selection state and its pulse timer."""

from .pulse import PulseConfig, PulseTimer
from .controller import SelectionController

__all__ = ["PulseConfig", "PulseTimer", "SelectionController"]
