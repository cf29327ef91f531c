"""
Celery Beat schedule for the daily action engine.

Times are UTC. Assignment runs before the evening email; the decay sweep
runs once the previous day can no longer be completed on time.
"""

from celery.schedules import crontab

beat_schedule = {
    'assign-daily-actions': {
        'task': 'tasks.assign_daily_actions',
        'schedule': crontab(hour=18, minute=0),
        'options': {'expires': 6 * 3600},
    },
    'sweep-missed-days': {
        'task': 'tasks.sweep_missed_days',
        'schedule': crontab(hour=3, minute=0),
        'options': {'expires': 12 * 3600},
    },
    # Easter moves and New Year windows roll over; rewrite them for the new year.
    'refresh-seasonal-windows': {
        'task': 'tasks.refresh_seasonal_windows',
        'schedule': crontab(hour=0, minute=30, day_of_month=1, month_of_year=1),
    },
}
