import os
import subprocess
import sys
import time

from libs.config import get_setting

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

SERVICES = [
    ("state_service", "services.state_service.app:serve_app",
     str(get_setting("services.state_host", "0.0.0.0")),
     int(get_setting("services.state_port", 5000))),
]


def main():
    procs = []
    env = os.environ.copy()
    # ROOT on sys.path so that services/ and libs/ import without installing
    env["PYTHONPATH"] = ROOT + (os.pathsep + env["PYTHONPATH"] if env.get("PYTHONPATH") else "")

    for name, app, host, port in SERVICES:
        cmd = [
            sys.executable, "-m", "uvicorn", app,
            "--factory",
            "--host", host,
            "--port", str(port),
        ]
        print(f"Starting {name} on {host}:{port} ...")
        procs.append(subprocess.Popen(cmd, cwd=ROOT, env=env))

    print(f"\nState file: {get_setting('services.state_file')}")
    print("All services started. Press Ctrl+C to stop.\n")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping...")
        for p in procs:
            p.terminate()
        for p in procs:
            try:
                p.wait(timeout=10)
            except subprocess.TimeoutExpired:
                p.kill()


if __name__ == "__main__":
    main()
