# Overview: Service-layer operations for the audit ledger.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import Branch, LedgerEvent
"""
Ledger invariants

- Append-only audit log for cross-cutting domain events.
- No domain/business logic in the ledger itself.
- Events are written inside the same DB transaction as the change they record.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_ledger_event(
    *,
    branch_id: int,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    actor_user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[str] = None,
) -> LedgerEvent:
    """
    Append an audit event.

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    if db.session.get(Branch, branch_id) is None:
        raise ValueError(f"Branch {branch_id} not found for ledger event")

    ev = LedgerEvent(
        branch_id=branch_id,
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        note=note[:255] if note else None,
        payload=payload,
    )
    if occurred_at is not None:
        ev.occurred_at = occurred_at

    db.session.add(ev)
    db.session.flush()
    return ev


def list_ledger_events(
    *,
    branch_id: int | None = None,
    event_category: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = 100,
) -> list[LedgerEvent]:
    query = db.session.query(LedgerEvent)

    if branch_id is not None:
        query = query.filter(LedgerEvent.branch_id == branch_id)
    if event_category:
        query = query.filter(LedgerEvent.event_category == event_category)
    if entity_type:
        query = query.filter(LedgerEvent.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(LedgerEvent.entity_id == entity_id)

    return query.order_by(LedgerEvent.id.desc()).limit(limit).all()
