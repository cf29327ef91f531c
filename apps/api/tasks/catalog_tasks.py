"""
Catalog Maintenance Tasks

Rewrites the explicit eligibility fields the selection pipeline reads:
yearly seasonal windows, and household tags for untagged actions.
"""

import asyncio
from datetime import date
from typing import Dict, Optional
from core.database import create_worker_session_factory
from tasks import celery_app
from services.catalog_store import SqlCatalogStore
from services.household_relevance import infer_household_tags
from services.seasonal_windows import seasonal_window_for_name
import logging

logger = logging.getLogger(__name__)


async def refresh_seasonal_windows(catalog: SqlCatalogStore, year: int) -> Dict:
    updated = []
    for action in await catalog.list_actions():
        window = seasonal_window_for_name(action.name, year)
        if window is None:
            continue
        start, end = window
        if (action.seasonal_start, action.seasonal_end) == (start, end):
            continue
        if await catalog.set_seasonal_window(action.id, start, end):
            updated.append(action.id)

    logger.info(
        f"Refreshed {len(updated)} seasonal windows for {year}",
        extra={"extra_fields": {"year": year, "action_ids": updated}},
    )
    return {"year": year, "updated": updated}


async def backfill_household_tags(catalog: SqlCatalogStore) -> Dict:
    tagged = 0
    untagged = await catalog.list_untagged_actions()
    for action in untagged:
        if await catalog.set_household_tags(action.id, infer_household_tags(action.text)):
            tagged += 1

    logger.info(
        f"Backfilled household tags on {tagged} actions",
        extra={"extra_fields": {"candidates": len(untagged), "tagged": tagged}},
    )
    return {"candidates": len(untagged), "tagged": tagged}


@celery_app.task(name="tasks.refresh_seasonal_windows")
def refresh_seasonal_windows_task(year: Optional[int] = None) -> Dict:
    year = year or date.today().year
    try:
        catalog = SqlCatalogStore(create_worker_session_factory())
        return {"status": "success", **asyncio.run(refresh_seasonal_windows(catalog, year))}
    except Exception as e:
        logger.error(f"Error in refresh_seasonal_windows_task: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e)}


@celery_app.task(name="tasks.backfill_household_tags")
def backfill_household_tags_task() -> Dict:
    """One-off after deploying explicit household tags; safe to re-run."""
    try:
        catalog = SqlCatalogStore(create_worker_session_factory())
        return {"status": "success", **asyncio.run(backfill_household_tags(catalog))}
    except Exception as e:
        logger.error(f"Error in backfill_household_tags_task: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e)}
