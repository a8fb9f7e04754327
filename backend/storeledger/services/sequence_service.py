# Overview: Per-organization document numbering (internal_id allocation).

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_internal_id(org_id: int, document_type: str) -> int:
    """
    Allocate the next internal_id for an organization/document family.

    Runs inside the caller's transaction: the increment holds the sequence
    row lock until the document itself commits, so numbers are gap-free
    when the creating transaction rolls back.
    """
    if not org_id:
        raise DocumentSequenceError("org_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.org_id == org_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        return _current(org_id, document_type) - 1

    # First document of this family in the organization
    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(org_id=org_id, document_type=document_type, next_number=2))
        return 1
    except IntegrityError:
        # A concurrent transaction created the row first
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        return _current(org_id, document_type) - 1


def _current(org_id: int, document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(org_id=org_id, document_type=document_type)
        .execution_options(populate_existing=True)
        .scalar()
    )
