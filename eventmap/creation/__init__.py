"""Event creation flow."""

from .draft import EventDraft, ReverseGeocoder

__all__ = ["EventDraft", "ReverseGeocoder"]
