"""
Audit Logger for LLM traffic.

Provides append-only audit logging for:
- Incoming translation requests
- LLM invocations (parameters, full request messages, full responses, errors)
- Stage results (analysis summary, synthesis inputs)

Logs are stored as append-only JSON Lines files with daily rotation. Writes
are serialized by a process-wide lock so concurrent requests never interleave
inside a line.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import AUDIT_RETENTION_DAYS

logger = logging.getLogger(__name__)


class AuditEventType(str, Enum):
    """Types of audit events."""

    TRANSLATE_REQUEST = "translate.request"

    # Gateway checkpoints
    LLM_CALL = "llm.call"
    LLM_REQUEST = "llm.request"
    LLM_RESPONSE = "llm.response"
    LLM_ERROR = "llm.error"

    # Stage events
    ANALYSIS_RESULT = "analysis.result"
    SYNTHESIS_INPUT = "synthesis.input"


class AuditLogger:
    """Audit logger for LLM calls.

    Writes audit events to append-only JSONL files with daily rotation and
    configurable retention. Instances are injected into the gateway and the
    stage services; use NullAuditLogger or InMemoryAuditLogger where no file
    should be written.

    Attributes:
        log_dir: Directory for audit log files.
        retention_days: Number of days to retain logs.
    """

    _write_lock = threading.Lock()

    def __init__(
        self,
        log_dir: Optional[str] = None,
        retention_days: int = AUDIT_RETENTION_DAYS,
    ):
        """Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (defaults to $LOG_PATH/audit).
            retention_days: Days to retain logs before deletion.
        """
        self.log_dir = Path(
            log_dir or os.path.join(os.getenv("LOG_PATH", "./logs"), "audit")
        )
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.retention_days = retention_days
        self._retention_checked = False

        logger.info(f"AuditLogger initialized: {self.log_dir}")

    def _get_log_file(self) -> Path:
        """Get current log file path (daily rotation)."""
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return self.log_dir / f"audit_{today}.jsonl"

    def log(
        self,
        event_type: AuditEventType,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> None:
        """Write an audit log entry.

        Args:
            event_type: Type of audit event.
            details: Event payload.
            success: Whether the recorded action succeeded.
            error_message: Error message if the action failed.
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.value,
            "details": details,
            "success": success,
            "error": error_message,
        }
        entry = {k: v for k, v in entry.items() if v is not None}
        self._write(entry)

    def _write(self, entry: Dict[str, Any]) -> None:
        line = json.dumps(entry, ensure_ascii=False, default=str) + "\n"
        try:
            with self._write_lock:
                with open(self._get_log_file(), "a", encoding="utf-8") as f:
                    f.write(line)
                if not self._retention_checked:
                    self._retention_checked = True
                    self._cleanup_old_logs()
        except OSError as e:
            logger.error(f"Failed to write audit log: {e}")

    def _cleanup_old_logs(self) -> None:
        """Delete audit logs older than retention_days."""
        if self.retention_days <= 0:
            return
        cutoff = datetime.now(timezone.utc).timestamp() - (self.retention_days * 86400)
        for path in self.log_dir.glob("audit_*.jsonl"):
            try:
                date_str = path.stem.replace("audit_", "")
                ts = (
                    datetime.fromisoformat(date_str)
                    .replace(tzinfo=timezone.utc)
                    .timestamp()
                )
                if ts < cutoff:
                    path.unlink(missing_ok=True)
            except (ValueError, OSError) as e:
                logger.debug(f"Skipping audit log cleanup for {path}: {e}")

    # Convenience methods for common events

    def log_request(self, endpoint: str, params: Dict[str, Any]) -> None:
        """Log an incoming translation request (content truncated)."""
        params = dict(params)
        for key in ("content", "originalText"):
            value = params.get(key)
            if isinstance(value, str) and len(value) > 100:
                params[key] = value[:100] + "..."
        logger.info("Translation request %s", endpoint)
        self.log(
            AuditEventType.TRANSLATE_REQUEST,
            details={"endpoint": endpoint, "params": params},
        )

    def log_llm_call(
        self,
        *,
        model: str,
        direction: Optional[str],
        stage: str,
        max_tokens: int,
        stream: bool,
        content_length: Optional[int],
    ) -> None:
        """Log the parameters of an LLM invocation."""
        logger.info(
            "LLM call model=%s direction=%s stage=%s max_tokens=%s stream=%s",
            model,
            direction,
            stage,
            max_tokens,
            stream,
        )
        self.log(
            AuditEventType.LLM_CALL,
            details={
                "model": model,
                "direction": direction,
                "stage": stage,
                "max_tokens": max_tokens,
                "stream": stream,
                "content_length": content_length,
            },
        )

    def log_llm_request(
        self,
        *,
        model: str,
        direction: Optional[str],
        stage: str,
        stream: bool,
        messages: List[Dict[str, str]],
    ) -> None:
        """Log the full message list sent upstream."""
        self.log(
            AuditEventType.LLM_REQUEST,
            details={
                "model": model,
                "direction": direction,
                "stage": stage,
                "stream": stream,
                "messages": messages,
            },
        )

    def log_llm_response(
        self,
        *,
        model: str,
        direction: Optional[str],
        stage: str,
        content: str,
        duration_ms: int,
    ) -> None:
        """Log the full response text received from upstream."""
        logger.info(
            "LLM response stage=%s length=%d duration=%dms",
            stage,
            len(content),
            duration_ms,
        )
        self.log(
            AuditEventType.LLM_RESPONSE,
            details={
                "model": model,
                "direction": direction,
                "stage": stage,
                "duration_ms": duration_ms,
                "response_length": len(content),
                "response_content": content,
            },
        )

    def log_llm_error(
        self,
        *,
        model: str,
        direction: Optional[str],
        stage: str,
        error: BaseException,
        duration_ms: int,
    ) -> None:
        """Log a failed LLM invocation."""
        logger.error("LLM %s call failed: %s", stage, error)
        self.log(
            AuditEventType.LLM_ERROR,
            details={
                "model": model,
                "direction": direction,
                "stage": stage,
                "duration_ms": duration_ms,
                "error_type": type(error).__name__,
                "status_code": getattr(error, "status_code", None),
            },
            success=False,
            error_message=str(error),
        )

    def log_analysis_result(
        self,
        *,
        questions_count: int,
        can_proceed_directly: bool,
        confidence_score: float,
    ) -> None:
        """Log the summary of a parsed analysis result."""
        self.log(
            AuditEventType.ANALYSIS_RESULT,
            details={
                "questions_count": questions_count,
                "can_proceed_directly": can_proceed_directly,
                "confidence_score": confidence_score,
            },
        )

    def log_synthesis_input(
        self, *, answers_count: int, original_text_length: int
    ) -> None:
        """Log the shape of the synthesis inputs."""
        self.log(
            AuditEventType.SYNTHESIS_INPUT,
            details={
                "answers_count": answers_count,
                "original_text_length": original_text_length,
            },
        )


class NullAuditLogger(AuditLogger):
    """Audit logger that records nothing."""

    def __init__(self) -> None:
        self.log_dir = None
        self.retention_days = 0
        self._retention_checked = True

    def _write(self, entry: Dict[str, Any]) -> None:
        return None


class InMemoryAuditLogger(AuditLogger):
    """Audit logger that keeps entries in a list, for tests and diagnostics."""

    def __init__(self) -> None:
        self.log_dir = None
        self.retention_days = 0
        self._retention_checked = True
        self.entries: List[Dict[str, Any]] = []

    def _write(self, entry: Dict[str, Any]) -> None:
        with self._write_lock:
            self.entries.append(entry)

    def events(self, event_type: AuditEventType) -> List[Dict[str, Any]]:
        """Return the recorded entries of one event type, in order."""
        return [e for e in self.entries if e["event_type"] == event_type.value]


# Global audit logger instance
audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get or create the global audit logger instance.

    Returns:
        AuditLogger instance writing under config.LOG_PATH.
    """
    global audit_logger
    if audit_logger is None:
        from rolebridge.api.config import config

        audit_logger = AuditLogger(
            log_dir=os.path.join(config.LOG_PATH, "audit"),
            retention_days=config.AUDIT_RETENTION_DAYS,
        )
    return audit_logger
