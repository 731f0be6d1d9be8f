"""
Audit trail for CORA sessions.

Every user request, command (run or declined), saved file, shell reset and
error becomes one JSON line in the audit log and one record on the
``cora.audit`` logger.
"""

import json
import logging
import os
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_PATH = "~/.config/cora/logs/audit.log"
RECENT_LIMIT = 100
PREVIEW_CHARS = 500

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ActionType(Enum):
    """Kinds of audited events."""
    USER_QUERY = "user_query"
    COMMAND = "command"
    COMMAND_DECLINED = "command_declined"
    FILE_WRITE = "file_write"
    SHELL_RESET = "shell_reset"
    ERROR = "error"


@dataclass
class AuditEntry:
    """One line of the audit log."""
    timestamp: str
    action_type: str
    description: str
    user: str
    success: bool
    details: dict = field(default_factory=dict)
    session_id: Optional[str] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(**data)


def _current_user() -> str:
    return os.environ.get("USER") or os.environ.get("USERNAME") or "unknown"


class AuditLogger:
    """Writes audit entries and keeps the most recent ones in memory."""

    def __init__(self, log_path: Optional[str] = None, enabled: bool = True, level: str = "info"):
        """
        Args:
            log_path: JSON-lines file to append to
            enabled: Whether entries are written to the file at all
            level: Level name for the ``cora.audit`` logger
        """
        self.log_path = Path(log_path or DEFAULT_AUDIT_PATH).expanduser()
        self.enabled = enabled and self._prepare_directory()

        self.logger = logging.getLogger("cora.audit")
        self.logger.setLevel(LEVELS.get((level or "").lower(), logging.INFO))

        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.user = _current_user()
        self._recent: "deque[AuditEntry]" = deque(maxlen=RECENT_LIMIT)

    @classmethod
    def from_config(cls, config) -> "AuditLogger":
        """Build an audit logger from the ``logging`` section of a CoraConfig."""
        section = config.logging
        return cls(log_path=section.path, enabled=section.enabled, level=section.level)

    def _prepare_directory(self) -> bool:
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Audit log disabled, cannot create %s: %s", self.log_path.parent, e)
            return False
        return True

    def log(
        self,
        action_type: ActionType,
        description: str,
        success: bool = True,
        details: Optional[dict] = None,
        error: Optional[str] = None
    ) -> AuditEntry:
        """Record one event and return its entry."""
        entry = AuditEntry(
            timestamp=datetime.now().isoformat(),
            action_type=action_type.value,
            description=description,
            user=self.user,
            success=success,
            details=details or {},
            session_id=self.session_id,
            error=error,
        )
        self._recent.append(entry)

        if success:
            self.logger.info("%s: %s", entry.action_type, description)
        else:
            self.logger.error("%s: %s (%s)", entry.action_type, description, error)

        if self.enabled:
            try:
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(entry.to_json() + "\n")
            except OSError as e:
                self.logger.warning("Could not append to %s: %s", self.log_path, e)

        return entry

    def log_user_query(self, query: str) -> AuditEntry:
        return self.log(ActionType.USER_QUERY, f"User asked: {query[:100]}", details={"query": query})

    def log_command(self, command: str, output: str, error: str) -> AuditEntry:
        """Record an executed command; stderr output marks it as failed."""
        return self.log(
            ActionType.COMMAND,
            f"Executed: {command[:100]}",
            success=not error,
            details={"command": command, "output_preview": (output or "")[:PREVIEW_CHARS]},
            error=error[:PREVIEW_CHARS] if error else None,
        )

    def log_command_declined(self, command: str) -> AuditEntry:
        return self.log(ActionType.COMMAND_DECLINED, f"Declined: {command[:100]}", details={"command": command})

    def log_file_write(self, path: str, success: bool, error: Optional[str] = None) -> AuditEntry:
        return self.log(ActionType.FILE_WRITE, f"Wrote file: {path}", success=success,
                        details={"path": path}, error=error)

    def log_shell_reset(self, reason: str) -> AuditEntry:
        return self.log(ActionType.SHELL_RESET, f"Shell reset: {reason}", details={"reason": reason})

    def log_error(self, description: str, error: str, details: Optional[dict] = None) -> AuditEntry:
        return self.log(ActionType.ERROR, description, success=False, details=details, error=error)

    def get_recent_entries(self, count: int = 10, action_type: Optional[ActionType] = None) -> List[AuditEntry]:
        """Most recent entries, oldest first, optionally of one type."""
        entries = [
            entry for entry in self._recent
            if action_type is None or entry.action_type == action_type.value
        ]
        return entries[-count:]
