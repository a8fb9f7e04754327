# Overview: Error sink for unexpected failures; persists an ErrorLog row per incident.

from __future__ import annotations

import traceback
import uuid

from flask import current_app

from ..extensions import db
from ..models import ErrorLog


def new_reference_id() -> str:
    return uuid.uuid4().hex[:12]


def format_exception(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def log_error(
    error: BaseException,
    *,
    org_id: int | None = None,
    user_id: int | None = None,
    url: str | None = None,
    method: str | None = None,
    status: int | None = 500,
) -> str:
    """
    Persist an unexpected failure and return its reference id.

    Must be called after the failing transaction was rolled back. Never
    raises: if the row cannot be stored, the failure is logged and the
    reference id is still returned so the user can quote it.
    """
    reference_id = new_reference_id()
    details = format_exception(error)

    current_app.logger.error(
        "Unexpected error ref=%s org_id=%s user_id=%s %s %s\n%s",
        reference_id, org_id, user_id, method, url, details,
    )

    try:
        db.session.add(ErrorLog(
            reference_id=reference_id,
            org_id=org_id,
            user_id=user_id,
            url=url,
            method=method,
            status=status,
            error=details,
        ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to persist error log ref=%s", reference_id)

    return reference_id
