"""
Celery worker entry point for the assignment batch, decay sweep and
catalog maintenance tasks.

Start with:
    celery -A main worker --loglevel=info
    celery -A main beat --loglevel=info
"""
import os
import sys

# The API package (services, tasks, core) is mounted at /api in the container.
sys.path.insert(0, os.environ.get("API_PATH", "/api"))

from core.logging import setup_logging  # noqa: E402
from tasks import celery_app  # noqa: E402

setup_logging()

app = celery_app


@celery_app.task(name="worker.health_check")
def health_check():
    """Round-trip check that the worker is consuming from the broker."""
    return {"status": "ok", "registered": sorted(t for t in celery_app.tasks if t.startswith("tasks."))}
