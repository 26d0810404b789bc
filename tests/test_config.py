import json

from libs.config import get_setting, reload_app_config


def test_defaults(isolated_config):
    assert get_setting("dashboard.backend_url") == "http://localhost:5000/status"
    assert get_setting("dashboard.poll_interval_ms") == 500
    assert get_setting("dashboard.enabled") is True
    assert get_setting("services.state_port") == 5000
    assert str(get_setting("services.state_file")).endswith("carState.json")
    assert get_setting("missing.key", "fallback") == "fallback"


def test_file_values_are_deep_merged(isolated_config):
    isolated_config.write_text(json.dumps({
        "dashboard": {"poll_interval_ms": 250},
        "services": {"state_port": 9100},
    }), encoding="utf-8")
    reload_app_config()
    assert get_setting("dashboard.poll_interval_ms") == 250
    assert get_setting("dashboard.enabled") is True
    assert get_setting("services.state_port") == 9100


def test_environment_overrides_file(isolated_config, monkeypatch):
    isolated_config.write_text(json.dumps({"dashboard": {"poll_interval_ms": 250}}), encoding="utf-8")
    monkeypatch.setenv("DRIVESIM_POLL_INTERVAL_MS", "1000")
    monkeypatch.setenv("DRIVESIM_SYNC_ENABLED", "false")
    monkeypatch.setenv("DRIVESIM_STATE_PORT", "not-a-port")
    reload_app_config()
    assert get_setting("dashboard.poll_interval_ms") == 1000
    assert get_setting("dashboard.enabled") is False
    assert get_setting("services.state_port") == 5000


def test_client_and_loop_read_config(isolated_config, monkeypatch):
    monkeypatch.setenv("DRIVESIM_BACKEND_URL", "http://sim.local:7000/status")
    monkeypatch.setenv("DRIVESIM_POLL_INTERVAL_MS", "200")
    reload_app_config()

    from libs.car_state import StateStore
    from services.dashboard_client.core import ReconciliationLoop, RemoteStateClient

    remote = RemoteStateClient()
    assert remote.status_url == "http://sim.local:7000/status"
    assert remote.base_url == "http://sim.local:7000"
    assert remote.timeout_s == 3.0
    sync = ReconciliationLoop(StateStore(), remote)
    assert sync.poll_interval_s == 0.2
    assert sync.enabled is True
    remote.close()
