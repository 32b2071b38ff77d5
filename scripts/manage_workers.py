"""
Celery worker management for the trial-expiry sweep.

Usage:
    python scripts/manage_workers.py worker --concurrency 2
    python scripts/manage_workers.py beat
    python scripts/manage_workers.py sweep      # run one sweep in-process
"""

import argparse
import asyncio
import subprocess
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

CELERY_APP = "educore.core.celery_app"


def _celery(*args: str) -> int:
    cmd = ["celery", "-A", CELERY_APP, *args]
    print(f"Running: {' '.join(cmd)}")
    return subprocess.run(cmd).returncode


def start_worker(concurrency: int, queues: str) -> int:
    return _celery("worker", "--loglevel=info", f"--concurrency={concurrency}", f"--queues={queues}")


def start_beat() -> int:
    """Beat enqueues ``expire_trials`` every ``TRIAL_SWEEP_INTERVAL_SECONDS``."""
    return _celery("beat", "--loglevel=info")


def purge_queue(queue: str) -> int:
    return _celery("purge", "-Q", queue, "-f")


def sweep_now() -> int:
    from educore.core.database import db_manager
    from educore.features.tenants.tasks import run_trial_sweep

    async def run() -> list[str]:
        db_manager.init()
        try:
            return await run_trial_sweep()
        finally:
            await db_manager.close()

    expired = asyncio.run(run())
    print(f"Expired {len(expired)} trial(s)")
    for tenant_id in expired:
        print(f"  {tenant_id}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Manage educore Celery workers")
    parser.add_argument("command", choices=["worker", "beat", "purge", "sweep"])
    parser.add_argument("--concurrency", type=int, default=2)
    parser.add_argument("--queues", default="tenants")
    parser.add_argument("--queue", default="tenants", help="Queue to purge")

    args = parser.parse_args()

    if args.command == "worker":
        sys.exit(start_worker(args.concurrency, args.queues))
    elif args.command == "beat":
        sys.exit(start_beat())
    elif args.command == "purge":
        sys.exit(purge_queue(args.queue))
    else:
        sys.exit(sweep_now())
