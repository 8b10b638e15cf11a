"""
Event store over Supabase's PostgREST API.

Credentials are read from the environment when a request is made, so the
module imports cleanly without them. Missing credentials surface as
``LoadFailure`` or ``CreateFailure`` like any other store error.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from ..errors import CreateFailure, LoadFailure
from ..models import Event
from .base import EventRecord, NewEvent

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"


def _require_credentials(url: Optional[str], api_key: Optional[str]) -> Tuple[str, str]:
    """Resolve the project URL and anon key, explicit values first."""
    url = url or os.getenv("SUPABASE_URL", "")
    if not url:
        raise RuntimeError(
            "Missing SUPABASE_URL. Copy .env.sample to .env and set your project URL."
        )
    api_key = api_key or os.getenv("SUPABASE_ANON_KEY", "")
    if not api_key:
        raise RuntimeError(
            "Missing SUPABASE_ANON_KEY. Copy .env.sample to .env and set your anon key."
        )
    return url.rstrip("/"), api_key


class SupabaseEventStore:
    """Loads and creates events in a Supabase ``events`` table."""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        table: str = "events",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._api_key = api_key
        self.table = table
        self.timeout = timeout
        self._transport = transport

    def _endpoint(self) -> Tuple[str, Dict[str, str]]:
        base, key = _require_credentials(self._url, self._api_key)
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
        }
        return f"{base}{REST_PATH}/{self.table}", headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def load_all_events(self) -> List[Event]:
        """Every row ordered by ``start_time`` ascending."""
        try:
            url, headers = self._endpoint()
        except RuntimeError as e:
            raise LoadFailure(str(e)) from e
        params = {"select": "*", "order": "start_time.asc"}

        try:
            async with self._client() as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                rows = response.json()
        except httpx.HTTPError as e:
            raise LoadFailure(f"Event store request failed: {e}") from e
        except ValueError as e:
            raise LoadFailure(f"Event store returned invalid JSON: {e}") from e

        if not isinstance(rows, list):
            raise LoadFailure(f"Expected a list of rows, got {type(rows).__name__}")

        events: List[Event] = []
        for row in rows:
            try:
                events.append(EventRecord.model_validate(row).to_event())
            except ValidationError as e:
                row_id = row.get("id") if isinstance(row, dict) else None
                logger.warning(f"Skipping malformed event row {row_id}: {e.error_count()} errors")
        return events

    async def create_event(self, fields: NewEvent) -> str:
        """Insert one row and return the id the store assigned."""
        try:
            url, headers = self._endpoint()
        except RuntimeError as e:
            raise CreateFailure(str(e)) from e
        headers["Prefer"] = "return=representation"

        try:
            async with self._client() as client:
                response = await client.post(url, json=fields.to_payload(), headers=headers)
                response.raise_for_status()
                created: Any = response.json()
        except httpx.HTTPError as e:
            raise CreateFailure(f"Event store rejected the event: {e}") from e
        except ValueError as e:
            raise CreateFailure(f"Event store returned invalid JSON: {e}") from e

        row = created[0] if isinstance(created, list) and created else created
        if not isinstance(row, dict) or row.get("id") is None:
            raise CreateFailure("Event store response did not include an id")
        event_id = str(row["id"])
        logger.info(f"Created event {event_id}")
        return event_id
