"""Single-file persistence for the car state service."""

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Mapping

from libs.car_state import DEFAULT_STATE, Action, CarState, apply, apply_trusted, from_dict
from libs.log.tracing import new_id

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredSnapshot:
    state: CarState
    revision: int
    epoch: str


class FileStateStore:
    def __init__(self, path: str, default: CarState = DEFAULT_STATE) -> None:
        self.path = path
        self.default = default
        self.epoch = new_id("e_")
        self._lock = threading.Lock()
        self._revision = 0
        self._state = self._load()

    def _load(self) -> CarState:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data: Any = json.load(f)
        except FileNotFoundError:
            _logger.warning("state file %s not found, using defaults", self.path)
            return self.default
        except (OSError, ValueError) as e:
            _logger.warning("could not load state file %s (%s), using defaults", self.path, e)
            return self.default
        if not isinstance(data, dict):
            _logger.warning("state file %s does not hold an object, using defaults", self.path)
            return self.default
        return from_dict(data, base=self.default)

    def _save(self, state: CarState) -> bool:
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            _logger.error("failed to save state to %s: %s", self.path, e)
            return False
        _logger.debug("state saved to %s", self.path)
        return True

    def _snapshot(self) -> StoredSnapshot:
        return StoredSnapshot(self._state, self._revision, self.epoch)

    def _commit(self, new_state: CarState) -> StoredSnapshot:
        if new_state != self._state:
            self._revision += 1
        self._state = new_state
        self._save(new_state)
        return self._snapshot()

    def current(self) -> StoredSnapshot:
        """In-memory snapshot, without touching the file."""
        with self._lock:
            return self._snapshot()

    def reload(self) -> StoredSnapshot:
        """Re-read the file; an out-of-process change bumps the revision."""
        with self._lock:
            loaded = self._load()
            if loaded != self._state:
                _logger.info("state file changed outside the service")
                self._revision += 1
                self._state = loaded
            return self._snapshot()

    def merge(self, partial: Mapping[str, Any]) -> StoredSnapshot:
        with self._lock:
            return self._commit(apply_trusted(self._state, partial))

    def apply_action(self, action: Action) -> StoredSnapshot:
        with self._lock:
            return self._commit(apply(self._state, action))
