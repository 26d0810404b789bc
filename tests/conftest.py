import threading
from typing import Any, Dict, List, Optional

import pytest

from libs.config import app_config
from services.dashboard_client.core.remote import RemoteSnapshot, RemoteUnavailable


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the config loader at an empty file and clear DRIVESIM_* overrides."""
    cfg_path = tmp_path / "app_config.json"
    cfg_path.write_text("{}", encoding="utf-8")
    monkeypatch.setenv("APP_CONFIG_FILE", str(cfg_path))
    monkeypatch.setenv("APP_CONFIG_SKIP_LOCAL", "1")
    for name in app_config._ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    app_config.reload_app_config()
    yield cfg_path
    app_config.load_app_config.cache_clear()


class FakeRemote:
    """Stands in for RemoteStateClient; records pushes, serves a settable snapshot."""

    status_url = "http://fake.local/status"

    def __init__(self, state: Optional[Dict[str, Any]] = None, revision: Optional[int] = None,
                 epoch: Optional[str] = None) -> None:
        self.snapshot = RemoteSnapshot(state or {}, revision, epoch)
        self.push_reply: Optional[RemoteSnapshot] = None
        self.pushed: List[Dict[str, Any]] = []
        self.fetches = 0
        self.down = False
        self._lock = threading.Lock()

    def fetch_status(self) -> RemoteSnapshot:
        with self._lock:
            self.fetches += 1
        if self.down:
            raise RemoteUnavailable("request failed: ConnectionError: refused")
        return self.snapshot

    def push_status(self, patch: Dict[str, Any]) -> RemoteSnapshot:
        if self.down:
            raise RemoteUnavailable("request failed: ConnectionError: refused")
        with self._lock:
            self.pushed.append(dict(patch))
        return self.push_reply or RemoteSnapshot(dict(patch))

    def close(self) -> None:
        pass


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()
