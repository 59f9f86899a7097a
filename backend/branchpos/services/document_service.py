# Overview: Per-branch document numbering (invoices, transfers).

from __future__ import annotations

from ..extensions import db
from ..models import DocumentSequence
from .concurrency import lock_for_update


class DocumentSequenceError(Exception):
    """Raised when a document number cannot be allocated."""
    pass


def next_document_number(
    *,
    branch_id: int,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Allocate the next document number for a branch/type, e.g. "INV-000001".

    The sequence row is locked for the rest of the caller's transaction.
    """
    if not branch_id:
        raise DocumentSequenceError("branch_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    seq = lock_for_update(
        db.session.query(DocumentSequence).filter_by(
            branch_id=branch_id,
            document_type=document_type,
        )
    ).first()

    if seq is None:
        seq = DocumentSequence(branch_id=branch_id, document_type=document_type, next_number=1)
        db.session.add(seq)

    number = seq.next_number
    seq.next_number = number + 1
    db.session.flush()

    return f"{prefix}-{number:0{pad}d}"
