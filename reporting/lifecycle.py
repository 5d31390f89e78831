"""
reporting/lifecycle.py

Report status state machine.

    pending -> processing -> completed
                          -> failed

completed and failed are terminal; nothing returns to pending.
"""

from __future__ import annotations

from app.errors import InvalidReportTransition
from db.models.report import ReportStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    ReportStatus.PENDING: frozenset({ReportStatus.PROCESSING}),
    ReportStatus.PROCESSING: frozenset({ReportStatus.COMPLETED, ReportStatus.FAILED}),
    ReportStatus.COMPLETED: frozenset(),
    ReportStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({ReportStatus.COMPLETED, ReportStatus.FAILED})

_PROGRESS = {
    ReportStatus.PENDING: 0,
    ReportStatus.PROCESSING: 50,
    ReportStatus.COMPLETED: 100,
    ReportStatus.FAILED: 100,
}

_DEFAULT_MESSAGES = {
    ReportStatus.PENDING: "Report generation queued",
    ReportStatus.PROCESSING: "Report generation in progress",
    ReportStatus.COMPLETED: "Report generation completed",
    ReportStatus.FAILED: "Report generation failed",
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidReportTransition(
            f"Report cannot move from '{current}' to '{target}'.",
            context={"current": current, "target": target},
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def progress_for(status: str) -> int:
    return _PROGRESS.get(status, 0)


def default_message_for(status: str) -> str:
    return _DEFAULT_MESSAGES.get(status, status)
