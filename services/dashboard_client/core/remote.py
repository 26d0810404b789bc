from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from libs.car_state import Action
from libs.config import get_setting

REVISION_HEADER = "X-State-Revision"
EPOCH_HEADER = "X-State-Epoch"


class RemoteUnavailable(RuntimeError):
    pass


@dataclass(frozen=True)
class RemoteSnapshot:
    state: Dict[str, Any]
    revision: Optional[int] = None
    epoch: Optional[str] = None


def _safe_json(resp: requests.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        raise RemoteUnavailable(f"invalid json from {resp.url}: {e}") from e
    if not isinstance(data, dict):
        raise RemoteUnavailable(f"expected a json object from {resp.url}")
    return data


def _revision(resp: requests.Response, body: Mapping[str, Any]) -> Optional[int]:
    raw = resp.headers.get(REVISION_HEADER, body.get("revision"))
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


class RemoteStateClient:
    """Blocking HTTP client for the state service.

    Every failure (connection error, timeout, non-200, unusable body) is raised
    as ``RemoteUnavailable``.
    """

    def __init__(self, status_url: Optional[str] = None, timeout_s: Optional[float] = None,
                 session: Optional[requests.Session] = None) -> None:
        self.status_url = str(status_url or get_setting("dashboard.backend_url", "http://localhost:5000/status")).rstrip("/")
        base = self.status_url
        if base.endswith("/status"):
            base = base[: -len("/status")]
        self.base_url = base
        self.timeout_s = float(timeout_s if timeout_s is not None else get_setting("dashboard.timeout_s", 3))
        self.session = session or requests.Session()

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            r = self.session.request(method, url, timeout=self.timeout_s, **kwargs)
        except requests.RequestException as e:
            raise RemoteUnavailable(f"request failed: {type(e).__name__}: {e}") from e
        if r.status_code != 200:
            raise RemoteUnavailable(f"http {r.status_code}: {r.text[:200]}")
        return r

    def fetch_status(self) -> RemoteSnapshot:
        r = self._request("GET", self.status_url)
        data = _safe_json(r)
        return RemoteSnapshot(data, _revision(r, {}), r.headers.get(EPOCH_HEADER))

    def push_status(self, patch: Mapping[str, Any]) -> RemoteSnapshot:
        r = self._request("POST", self.status_url, json=dict(patch))
        data = _safe_json(r)
        state = data.get("state")
        return RemoteSnapshot(state if isinstance(state, dict) else {}, _revision(r, data), r.headers.get(EPOCH_HEADER))

    def post_action(self, action: Action) -> RemoteSnapshot:
        r = self._request("POST", f"{self.base_url}/action", json=action.to_dict())
        data = _safe_json(r)
        state = data.get("state")
        return RemoteSnapshot(state if isinstance(state, dict) else {}, _revision(r, data), r.headers.get(EPOCH_HEADER))

    def health(self) -> Dict[str, Any]:
        return _safe_json(self._request("GET", f"{self.base_url}/health"))

    def close(self) -> None:
        self.session.close()
