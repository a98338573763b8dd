"""Scheduling subsystem: scheduled-publish evaluator and polling driver."""

from blog_scheduler.scheduling.evaluator import ScheduledPublishEvaluator
from blog_scheduler.scheduling.publishing_scheduler import PublishingScheduler

__all__ = [
    "ScheduledPublishEvaluator",
    "PublishingScheduler",
]
