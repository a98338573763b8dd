"""Records produced by the structured logger."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(Enum):
    """Severity, numerically identical to the stdlib ``logging`` levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @property
    def name_str(self) -> str:
        return self.name.lower()


class LogComponent(Enum):
    """Where a log line came from."""

    SCHEDULER = "scheduler"
    DATABASE = "database"
    CONFIG = "config"
    STARTUP = "startup"


_READABLE_TAGS = {
    LogLevel.DEBUG: "[DEBUG]",
    LogLevel.INFO: "[INFO]",
    LogLevel.WARNING: "[WARN]",
    LogLevel.ERROR: "[ERROR]",
    LogLevel.CRITICAL: "[CRIT]",
}


@dataclass
class LogEntry:
    """One structured log line.

    ``tick_id`` ties together everything logged during a driver tick and
    ``article_id`` names the article a line is about.  Error and timing
    fields stay ``None`` unless the caller supplied them.
    """

    timestamp: datetime
    level: LogLevel
    component: LogComponent
    message: str
    tick_id: Optional[str] = None
    article_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    error_type: Optional[str] = None
    error_traceback: Optional[str] = None
    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out.update(
            timestamp=self.timestamp.isoformat(),
            level=self.level.value,
            level_name=self.level.name_str,
            component=self.component.value,
        )
        return out

    def to_json(self) -> str:
        """One JSON line; values json cannot encode (datetimes in ``data``) use ``str``."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def to_readable(self) -> str:
        tag = _READABLE_TAGS.get(self.level, "[???]")
        line = (
            f"{tag} [{self.timestamp.strftime('%H:%M:%S')}] "
            f"[{self.component.value}] {self.message}"
        )
        if self.duration_ms:
            line += f" ({self.duration_ms}ms)"
        return line
