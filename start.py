#!/usr/bin/env python3
"""
Fablecast Service Entrypoint

This script determines which process to run based on the SERVICE_TYPE
environment variable. Set SERVICE_TYPE in each deployed service's settings.

SERVICE_TYPE values:
  - web (default): Run the FastAPI web server via gunicorn
  - worker: Run the RQ story worker
  - sweeper: Run the stale job sweeper
"""

import os
import sys

SERVICE_TYPE = os.environ.get("SERVICE_TYPE", "web")
PORT = os.environ.get("PORT", "8080")

print("=" * 50)
print(f"Fablecast Service: {SERVICE_TYPE}")
print("=" * 50)

if SERVICE_TYPE == "web":
    print("Starting web server (gunicorn)...")
    cmd = [
        "gunicorn", "fablecast.api.main:app",
        "--workers", "2",
        "--worker-class", "uvicorn.workers.UvicornWorker",
        "--bind", f"0.0.0.0:{PORT}",
        "--timeout", "120",
        "--graceful-timeout", "30"
    ]
elif SERVICE_TYPE == "worker":
    print("Starting RQ worker (stories queue)...")
    cmd = ["python", "-m", "fablecast.queue.run_worker", "--queues", "stories"]
elif SERVICE_TYPE == "sweeper":
    print("Starting stale job sweeper...")
    cmd = ["python", "-m", "fablecast.queue.run_sweeper"]
else:
    print(f"ERROR: Unknown SERVICE_TYPE: {SERVICE_TYPE}")
    print("Valid values: web, worker, sweeper")
    sys.exit(1)

print(f"Running: {' '.join(cmd)}")
print("=" * 50)

# Replace this process with the actual command
os.execvp(cmd[0], cmd)
