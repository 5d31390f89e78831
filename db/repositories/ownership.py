"""
Owner-scoped lookup shared by every repository.
"""

from __future__ import annotations

import uuid
from typing import TypeVar

from sqlalchemy.orm import Session

from app.errors import Forbidden, NotFound

ModelT = TypeVar("ModelT")


def get_owned(
    session: Session,
    model: type[ModelT],
    record_id: uuid.UUID,
    owner_id: str,
    *,
    label: str,
    hide_foreign: bool = False,
) -> ModelT:
    """
    Load one record and check it belongs to ``owner_id``.

    Raises NotFound when the record does not exist, and Forbidden when it
    belongs to someone else (or NotFound when ``hide_foreign`` is set).
    """

    record = session.get(model, record_id)
    if record is None:
        raise NotFound(f"{label} not found.", context={"id": str(record_id)})
    if getattr(record, "owner_id") != owner_id:
        if hide_foreign:
            raise NotFound(f"{label} not found.", context={"id": str(record_id)})
        raise Forbidden(f"Not authorized to access this {label.lower()}.", context={"id": str(record_id)})
    return record
