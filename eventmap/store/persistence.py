"""Filter mode persisted in a small YAML key-value file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..errors import PersistenceFailure
from ..filtering import FilterMode

logger = logging.getLogger(__name__)

DEFAULT_KEY = "turku_events_filter"


class YamlFilterStore:
    """
    Stores the filter mode under ``key`` in a YAML mapping at ``path``.

    A missing file or an unrecognised value reads as "nothing saved"; I/O and
    parse errors raise ``PersistenceFailure``.
    """

    def __init__(self, path: Union[str, Path], key: str = DEFAULT_KEY):
        self.path = Path(path)
        self.key = key

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceFailure(f"Could not read {self.path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise PersistenceFailure(f"Expected a mapping in {self.path}, got {type(data).__name__}")
        return data

    def load_saved_mode(self) -> Optional[FilterMode]:
        value = self._read().get(self.key)
        mode = FilterMode.parse(value)
        if value is not None and mode is None:
            logger.warning(f"Ignoring unknown saved filter value {value!r}")
        return mode

    def save_mode(self, mode: FilterMode) -> None:
        try:
            data = self._read()
        except PersistenceFailure:
            # A corrupt file is replaced
            data = {}
        data[self.key] = mode.value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False)
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceFailure(f"Could not write {self.path}: {e}") from e
