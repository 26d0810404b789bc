from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional, Union

from libs.car_state import Action, CarState, StateStore
from .reconcile import ReconciliationLoop
from .remote import RemoteStateClient


class DashboardBridge:
    """Programmatic access for an embedding host.

    Talks to the same StateStore the dashboard renders from, without going
    through the network: nothing done here is pushed to the state service.
    """

    def __init__(self, store: StateStore, sync: Optional[ReconciliationLoop] = None) -> None:
        self.store = store
        self.sync = sync

    def _log(self, message: str) -> None:
        if self.sync is not None:
            self.sync.log(message)

    def update_state(self, partial: Mapping[str, Any]) -> CarState:
        state = self.store.replace_trusted(partial)
        self._log("LOCAL_BRIDGE: Partial update")
        return state

    def dispatch(self, action: Union[Action, Mapping[str, Any]]) -> CarState:
        if not isinstance(action, Action):
            action = Action.from_dict(action)
        state = self.store.dispatch(action)
        self._log(f"LOCAL_BRIDGE: Action {action.type}")
        return state

    def get_state(self) -> CarState:
        return self.store.state


@asynccontextmanager
async def open_dashboard(status_url: Optional[str] = None, poll_interval_ms: Optional[int] = None,
                         enabled: Optional[bool] = None, initial: Optional[CarState] = None,
                         remote: Optional[RemoteStateClient] = None) -> AsyncIterator[DashboardBridge]:
    """Build store, remote client, reconciliation loop and bridge; run the loop while open."""
    store = StateStore(initial)
    owns_remote = remote is None
    if remote is None:
        remote = RemoteStateClient(status_url)
    sync = ReconciliationLoop(store, remote, poll_interval_ms=poll_interval_ms, enabled=enabled)
    await sync.start()
    try:
        yield DashboardBridge(store, sync)
    finally:
        await sync.stop()
        if owns_remote:
            remote.close()
