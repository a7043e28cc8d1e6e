"""
Time-driven reminder and escalation sweeps.
"""

from .jobs import CronSchedule, JobRunner, ScheduledJob, default_jobs
from .reminders import ReminderScheduler, SweepResult
from .throttle import NotificationThrottle

__all__ = [
    'CronSchedule',
    'JobRunner',
    'ScheduledJob',
    'default_jobs',
    'ReminderScheduler',
    'SweepResult',
    'NotificationThrottle',
]
