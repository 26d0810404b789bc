"""Walk the cold-start scenario against a freshly started state service.

Starts scripts/run_all.py, drives the service through /action and /status and
prints each resulting snapshot.
"""

import json
import os
import signal
import subprocess
import sys
import time

import requests
from libs.config import get_setting

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

WATCHED = ("isEngineOn", "isBatteryDead", "lightsOn", "parkingLightsOn", "highBeamOn", "hazardLightsOn")


def _wait_health(url: str, timeout_s: int = 15) -> None:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        try:
            r = requests.get(url, timeout=1)
            if r.status_code == 200:
                return
        except requests.RequestException:
            pass
        time.sleep(0.3)
    raise RuntimeError(f"service not ready: {url}")


def _show(label: str, body: dict) -> None:
    state = body.get("state", body)
    print(f"{label:<28}", json.dumps({k: state.get(k) for k in WATCHED}))


def main() -> None:
    port = int(get_setting("services.state_port", 5000))
    base = f"http://127.0.0.1:{port}"
    timeout = float(get_setting("dashboard.timeout_s", 3))

    env = os.environ.copy()
    env["PYTHONPATH"] = ROOT + (os.pathsep + env["PYTHONPATH"] if env.get("PYTHONPATH") else "")
    runner = subprocess.Popen([sys.executable, "scripts/run_all.py"], cwd=ROOT, env=env)

    try:
        _wait_health(f"{base}/health")
        print("health:", requests.get(f"{base}/health", timeout=timeout).json())

        requests.post(f"{base}/action", json={"type": "RESET_ALL"}, timeout=timeout)
        _show("after RESET_ALL", requests.get(f"{base}/status", timeout=timeout).json())

        for typ in ("TOGGLE_ENGINE", "TOGGLE_LIGHTS", "TOGGLE_HIGH_BEAM", "TOGGLE_HAZARDS",
                    "TOGGLE_BATTERY", "TOGGLE_ENGINE", "TOGGLE_LIGHTS"):
            r = requests.post(f"{base}/action", json={"type": typ}, timeout=timeout)
            _show(f"after {typ}", r.json())

        r = requests.post(f"{base}/status", json={"isBatteryDead": False, "rpm": 800}, timeout=timeout)
        _show("after POST /status", r.json())
        print("revision:", r.headers.get("X-State-Revision"))
    finally:
        try:
            runner.send_signal(signal.SIGINT)
            runner.wait(timeout=8)
        except (OSError, subprocess.TimeoutExpired):
            runner.terminate()
            runner.wait(timeout=5)


if __name__ == "__main__":
    main()
