# Overview: Service-layer operations for branches.

from __future__ import annotations

from ..extensions import db
from ..models import Branch
from ..validation import ConflictError, NotFoundError


class BranchError(Exception):
    """Raised for branch rule violations."""
    pass


UPDATABLE_FIELDS = ("name", "address", "phone", "is_warehouse", "is_active")


def create_branch(
    name: str,
    code: str,
    address: str | None = None,
    phone: str | None = None,
    is_warehouse: bool = False,
) -> Branch:
    code = code.upper()
    if db.session.query(Branch).filter_by(code=code).first():
        raise ConflictError(f"Branch code '{code}' already exists")

    branch = Branch(
        name=name,
        code=code,
        address=address,
        phone=phone,
        is_warehouse=bool(is_warehouse),
        is_active=True,
    )
    db.session.add(branch)
    db.session.flush()
    return branch


def get_branch(branch_id: int) -> Branch:
    branch = db.session.get(Branch, branch_id)
    if not branch:
        raise NotFoundError(f"Branch {branch_id} not found")
    return branch


def get_active_branch(branch_id: int) -> Branch:
    """Load a branch that can take new documents (shifts, sales, transfers)."""
    branch = get_branch(branch_id)
    if not branch.is_active:
        raise BranchError(f"Branch {branch.code} is inactive")
    return branch


def list_branches(include_inactive: bool = False) -> list[Branch]:
    query = db.session.query(Branch)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(Branch.name).all()


def update_branch(branch_id: int, changes: dict) -> Branch:
    branch = get_branch(branch_id)
    for field in UPDATABLE_FIELDS:
        if field in changes:
            setattr(branch, field, changes[field])
    db.session.flush()
    return branch
