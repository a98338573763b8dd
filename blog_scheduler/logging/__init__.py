"""Structured logging system for the scheduler."""
from blog_scheduler.logging.models import LogLevel, LogComponent, LogEntry
from blog_scheduler.logging.publisher_logger import (
    PublisherLogger,
    get_logger,
    init_logger,
    stdlib_handler,
)
from blog_scheduler.logging.component_logger import ComponentLogger, TimedOperation

__all__ = [
    "LogLevel", "LogComponent", "LogEntry",
    "PublisherLogger", "init_logger", "get_logger", "stdlib_handler",
    "ComponentLogger", "TimedOperation",
]
