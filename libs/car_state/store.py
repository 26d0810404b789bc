import logging
import threading
from typing import Any, Callable, List, Mapping, Optional

from .actions import Action
from .engine import apply, apply_trusted
from .model import DEFAULT_STATE, CarState

_logger = logging.getLogger(__name__)

Listener = Callable[[CarState, CarState], None]


class StateStore:
    """Holds the current CarState and serializes every write to it.

    All mutation goes through ``dispatch`` (engine rules) or ``replace_trusted``
    (authoritative snapshot, no rule checks). Listeners are called with
    ``(before, after)`` after each write that changed the state.
    """

    def __init__(self, initial: Optional[CarState] = None) -> None:
        self._state = initial if initial is not None else DEFAULT_STATE
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> CarState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> CarState:
        with self._lock:
            before = self._state
            self._state = apply(before, action)
            after = self._state
        if after is before:
            _logger.debug("action %s left state unchanged", action.type)
        self._notify(before, after)
        return after

    def replace_trusted(self, partial: Mapping[str, Any]) -> CarState:
        with self._lock:
            before = self._state
            self._state = apply_trusted(before, partial)
            after = self._state
        self._notify(before, after)
        return after

    def _notify(self, before: CarState, after: CarState) -> None:
        if before == after:
            return
        for listener in list(self._listeners):
            try:
                listener(before, after)
            except Exception:
                _logger.exception("state listener failed")
