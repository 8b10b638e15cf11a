"""Reverse geocoding used by the event creation flow."""

from .mapbox import MapboxReverseGeocoder

__all__ = ["MapboxReverseGeocoder"]
