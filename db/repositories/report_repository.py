"""
Repository for report lifecycle persistence and owner-scoped lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from db.models.report import Report, ReportStatus
from db.repositories.ownership import get_owned
from reporting.lifecycle import default_message_for, ensure_transition


class ReportRepository:
    """
    Data access for Report records.

    Status changes go through ``transition`` which only writes when the row
    still holds the expected status, so two workers cannot both claim or
    finish the same report.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def create_report(
        self,
        *,
        owner_id: str,
        title: str,
        description: str | None,
        report_format: str,
        config: dict[str, Any],
    ) -> Report:
        report = Report(
            owner_id=owner_id,
            title=title,
            description=description,
            format=report_format,
            config=config,
            status=ReportStatus.PENDING,
            status_message=default_message_for(ReportStatus.PENDING),
        )
        self._session.add(report)
        self._session.flush()
        return report

    def get_report(self, report_id: uuid.UUID) -> Report | None:
        return self._session.get(Report, report_id)

    def get_for_owner(self, report_id: uuid.UUID, owner_id: str) -> Report:
        return get_owned(self._session, Report, report_id, owner_id, label="Report", hide_foreign=True)

    def count_for_owner(self, owner_id: str) -> int:
        stmt = select(func.count()).select_from(Report).where(Report.owner_id == owner_id)
        return int(self._session.scalar(stmt) or 0)

    def list_for_owner(self, owner_id: str, *, offset: int = 0, limit: int = 100) -> list[Report]:
        stmt: Select[tuple[Report]] = (
            select(Report)
            .where(Report.owner_id == owner_id)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def transition(
        self,
        report_id: uuid.UUID,
        *,
        expected: str,
        target: str,
        **values: Any,
    ) -> bool:
        """
        Move a report from ``expected`` to ``target`` atomically.

        Returns False when the row no longer holds ``expected`` (another
        worker moved it first, or it was deleted).
        """

        ensure_transition(expected, target)
        now = datetime.now(timezone.utc)
        values.setdefault("status_message", default_message_for(target))
        if target == ReportStatus.PROCESSING:
            values.setdefault("started_at", now)
        if target in {ReportStatus.COMPLETED, ReportStatus.FAILED}:
            values.setdefault("completed_at", now)
        values["updated_at"] = now

        stmt = (
            update(Report)
            .where(Report.id == report_id, Report.status == expected)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        changed = (result.rowcount or 0) == 1
        if changed:
            report = self._session.get(Report, report_id)
            if report is not None:
                self._session.refresh(report)
        return changed

    def delete_for_owner(self, report_id: uuid.UUID, owner_id: str) -> None:
        report = self.get_for_owner(report_id, owner_id)
        self._session.delete(report)
        self._session.flush()
