"""
Background tasks for tenant lifecycle.

Tasks run in Celery workers, separate from the API server.
"""

import asyncio
import logging

from educore.core.celery_app import celery_app
from educore.core.database import db_manager
from educore.features.tenants.lifecycle import tenant_lifecycle

logger = logging.getLogger(__name__)


async def run_trial_sweep() -> list[str]:
    """Expire lapsed trials using a fresh session."""
    async with db_manager.session_factory() as db:
        return await tenant_lifecycle.expire_trials(db)


@celery_app.task(name="educore.features.tenants.tasks.expire_trials")
def expire_trials() -> dict:
    """
    Periodic sweep: trial tenants past their trial_end_date go back to
    pending until a system administrator approves them.
    """
    logger.info("Starting trial expiry sweep")

    db_manager.init()
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        expired = loop.run_until_complete(run_trial_sweep())
    finally:
        loop.run_until_complete(db_manager.close())
        loop.close()

    logger.info(f"Trial expiry sweep finished: {len(expired)} tenant(s) expired")
    return {"expired": expired, "count": len(expired)}
