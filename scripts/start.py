#!/usr/bin/env python3
"""
Container entry point: release phase, then gunicorn in place of this process.

    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080


def _port() -> int:
    raw = (os.environ.get("PORT") or "").strip()
    if not raw:
        return DEFAULT_PORT
    if not raw.isdigit() or not 1 <= int(raw) <= 65535:
        print(f"ERROR: Invalid PORT value {raw!r}. Must be an integer 1-65535.", flush=True)
        sys.exit(1)
    return int(raw)


def _gunicorn_argv(port: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", os.environ.get("WEB_CONCURRENCY", "2"),
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = _port()

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    print(f"Starting gunicorn on port {port}", flush=True)
    argv = _gunicorn_argv(port)
    # exec: gunicorn takes over this PID and receives signals directly.
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
