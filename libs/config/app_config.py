import json
import os
from functools import lru_cache
from typing import Any, Callable, Dict, Tuple


def _repo_root() -> str:
    # libs/config/app_config.py -> repo_root
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _read_json(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, dict) else {}


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# env var -> (dotted setting path, converter)
_ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "DRIVESIM_STATE_HOST": ("services.state_host", str),
    "DRIVESIM_STATE_PORT": ("services.state_port", int),
    "DRIVESIM_STATE_FILE": ("services.state_file", str),
    "DRIVESIM_BACKEND_URL": ("dashboard.backend_url", str),
    "DRIVESIM_POLL_INTERVAL_MS": ("dashboard.poll_interval_ms", int),
    "DRIVESIM_SYNC_ENABLED": ("dashboard.enabled", _as_bool),
    "DRIVESIM_TIMEOUT_S": ("dashboard.timeout_s", float),
    "DRIVESIM_LOG_LEVEL": ("logging.level", str),
}


def _env_cfg() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name, (path, conv) in _ENV_OVERRIDES.items():
        raw = os.getenv(name)
        if raw is None or raw == "":
            continue
        try:
            value = conv(raw)
        except ValueError:
            continue
        cur = out
        parts = path.split(".")
        for p in parts[:-1]:
            cur = cur.setdefault(p, {})
        cur[parts[-1]] = value
    return out


@lru_cache(maxsize=1)
def load_app_config() -> Dict[str, Any]:
    root = _repo_root()
    default_cfg = {
        "services": {
            "state_host": "0.0.0.0",
            "state_port": 5000,
            "state_file": os.path.join(root, "data", "carState.json"),
        },
        "dashboard": {
            "backend_url": "http://localhost:5000/status",
            "poll_interval_ms": 500,
            "enabled": True,
            "timeout_s": 3,
        },
        "logging": {
            "level": "INFO",
        },
    }

    cfg_file = os.getenv("APP_CONFIG_FILE", os.path.join(root, "config", "app_config.json"))
    local_file = os.path.join(root, "config", "app_config.local.json")
    skip_local = os.getenv("APP_CONFIG_SKIP_LOCAL", "0") == "1"
    file_cfg = _read_json(cfg_file)
    local_cfg = {} if skip_local else _read_json(local_file)
    merged = _deep_merge(default_cfg, file_cfg)
    merged = _deep_merge(merged, local_cfg)
    merged = _deep_merge(merged, _env_cfg())
    return merged


def reload_app_config() -> Dict[str, Any]:
    load_app_config.cache_clear()
    return load_app_config()


def get_setting(path: str, default: Any = None) -> Any:
    cfg = load_app_config()
    cur: Any = cfg
    for p in path.split("."):
        if not isinstance(cur, dict) or p not in cur:
            return default
        cur = cur[p]
    return cur
