"""Keeps a local StateStore and the remote state service eventually consistent."""

import asyncio
import logging
from collections import deque
from contextlib import suppress
from typing import Any, Deque, Dict, NamedTuple, Optional, Set

from libs.car_state import Action, CarState, StateStore, apply_trusted, diff_states, invariant_violations
from libs.config import get_setting
from libs.log.tracing import now_iso
from .remote import RemoteSnapshot, RemoteStateClient, RemoteUnavailable

_logger = logging.getLogger(__name__)


class ActivityEntry(NamedTuple):
    time: str
    message: str


class ReconciliationLoop:
    def __init__(self, store: StateStore, remote: RemoteStateClient,
                 poll_interval_ms: Optional[int] = None, enabled: Optional[bool] = None,
                 activity_size: int = 20) -> None:
        self.store = store
        self.remote = remote
        if poll_interval_ms is None:
            poll_interval_ms = int(get_setting("dashboard.poll_interval_ms", 500))
        self.poll_interval_s = poll_interval_ms / 1000.0
        self.enabled = bool(get_setting("dashboard.enabled", True)) if enabled is None else enabled
        # None until the first request completes
        self.online: Optional[bool] = None
        self.activity: Deque[ActivityEntry] = deque(maxlen=activity_size)
        self._task: Optional["asyncio.Task[None]"] = None
        self._pushes: Set["asyncio.Task[bool]"] = set()
        # created on first push so it binds to the running loop
        self._push_lock: Optional[asyncio.Lock] = None
        self._generation = 0
        self._epoch: Optional[str] = None
        self._revision: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def generation(self) -> int:
        return self._generation

    def log(self, message: str) -> None:
        self.activity.appendleft(ActivityEntry(now_iso(), message))
        _logger.info(message)

    async def start(self) -> None:
        if not self.enabled:
            _logger.info("remote sync disabled, running offline")
            return
        if self.running:
            return
        self._generation += 1
        self._task = asyncio.create_task(self._poll_forever(self._generation))
        self.log(f"NETWORK: Started polling {self.remote.status_url}")

    async def stop(self) -> None:
        # pushes already in flight are left to finish
        self._generation += 1
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            self.log("NETWORK: Stopped polling")

    async def flush(self) -> None:
        """Wait for every push scheduled so far."""
        if self._pushes:
            await asyncio.gather(*list(self._pushes), return_exceptions=True)

    async def _poll_forever(self, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(self.poll_interval_s)
            try:
                await self.pull_once(generation)
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.exception("pull failed unexpectedly")

    def _set_online(self, online: bool, error: Optional[Exception] = None) -> None:
        if self.online is online:
            return
        self.online = online
        if online:
            self.log("NETWORK: Backend reachable")
        else:
            self.log(f"NETWORK: Backend unreachable ({error})")

    def _accept_revision(self, snap: RemoteSnapshot) -> bool:
        if snap.revision is None:
            return True
        if snap.epoch != self._epoch:
            self._epoch = snap.epoch
            self._revision = snap.revision
            return True
        if self._revision is not None and snap.revision < self._revision:
            return False
        self._revision = snap.revision
        return True

    async def pull_once(self, generation: Optional[int] = None) -> bool:
        """Fetch the remote snapshot and apply it if it differs; True when applied."""
        gen = self._generation if generation is None else generation
        try:
            snap = await asyncio.to_thread(self.remote.fetch_status)
        except RemoteUnavailable as e:
            self._set_online(False, e)
            return False
        if gen != self._generation:
            _logger.debug("dropping snapshot from stopped poller (generation %d)", gen)
            return False
        self._set_online(True)
        if not self._accept_revision(snap):
            _logger.debug("dropping stale snapshot revision %s", snap.revision)
            return False

        local = self.store.state
        if apply_trusted(local, snap.state) == local:
            return False
        after = self.store.replace_trusted(snap.state)
        broken = invariant_violations(after)
        if broken:
            _logger.warning("remote snapshot applied with inconsistent fields: %s", ", ".join(broken))
        self.log("REMOTE_SYNC: State updated from backend")
        return True

    def dispatch(self, action: Action) -> CarState:
        """Apply ``action`` locally, then push whatever fields it changed."""
        before = self.store.state
        after = self.store.dispatch(action)
        changed = diff_states(before, after)
        if changed and self.enabled:
            self._schedule_push(changed)
        return after

    def _schedule_push(self, patch: Dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("no running event loop, push of %s dropped", ", ".join(patch))
            return
        task = loop.create_task(self.push(patch))
        self._pushes.add(task)
        task.add_done_callback(self._pushes.discard)

    async def push(self, patch: Dict[str, Any]) -> bool:
        """Send ``patch``; pushes go out one at a time in the order they were scheduled."""
        if self._push_lock is None:
            self._push_lock = asyncio.Lock()
        try:
            async with self._push_lock:
                snap = await asyncio.to_thread(self.remote.push_status, patch)
        except RemoteUnavailable as e:
            self._set_online(False, e)
            self.log(f"SYNC_FAILED: {e}")
            return False
        self._set_online(True)
        self._accept_revision(snap)
        self.log(f"SYNCED: {', '.join(patch)}")
        return True
