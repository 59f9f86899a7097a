# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/branchpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, a default branch and admin/manager/cashier users.
#
# Users:
# - python -m flask users list [--branch-id 1]
# - python -m flask users create --username sara --name "Sara" --password "Password123!" --role cashier --branch-id 1
#
# Branches:
# - python -m flask branches list [--all]
# - python -m flask branches create --name "Downtown" --code DT [--warehouse]
#
# Installments:
# - python -m flask installments mark-overdue [--date 2026-01-31]
#   Flag ACTIVE plans whose due date has passed. Run daily from cron.
#
# Shifts:
# - python -m flask shifts list [--open] [--branch-id 1] [--limit 20]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, User
from .permissions import ROLES
from .services import branch_service, installment_service, shift_service
from .services.auth_service import create_user, PasswordValidationError
from .validation import ConflictError, ValidationError, money_str
from .time_utils import to_utc_z


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--branch-name', default='Main Branch', help='Default branch name')
@click.option('--branch-code', default='MAIN', help='Default branch code')
@with_appcontext
def init_system(branch_name, branch_code):
    """
    Initialize the database, a default branch and default users.

    Creates:
    - All tables (development; use `flask db upgrade` for managed schemas)
    - Default branch (if none exists)
    - Users: admin, manager, cashier, all with password "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing BranchPOS...")

    db.create_all()
    click.echo("PASS Tables created")

    branch = db.session.query(Branch).order_by(Branch.id).first()
    if not branch:
        branch = branch_service.create_branch(name=branch_name, code=branch_code)
        db.session.commit()
        click.echo(f"PASS Created default branch: {branch.name} (ID: {branch.id}, Code: {branch.code})")
    else:
        click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")

    click.echo("\nUSERS Creating default users...")
    for username, role in (("admin", "ADMIN"), ("manager", "MANAGER"), ("cashier", "CASHIER")):
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue

        create_user(
            username=username,
            name=username.capitalize(),
            password=DEFAULT_PASSWORD,
            role=role,
            branch_id=None if role == "ADMIN" else branch.id,
        )
        db.session.commit()
        click.echo(f"PASS Created user: {username} with role '{role}'")

    click.echo("\n" + "="*60)
    click.echo("DONE BranchPOS initialized")
    click.echo("="*60)
    click.echo(f"\nDefault Credentials (CHANGE IN PRODUCTION!): admin / manager / cashier -> {DEFAULT_PASSWORD}")
    click.echo("")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.lower() for r in ROLES]), prompt=True, help='Role')
@click.option('--branch-id', type=int, help='Home branch ID')
@with_appcontext
def create_user_cli(username, name, password, role, branch_id):
    """
    Create a new user.

    Password must meet strength requirements:
    8+ chars, uppercase, lowercase, digit, special char.
    """
    try:
        user = create_user(
            username=username,
            name=name,
            password=password,
            role=role.upper(),
            branch_id=branch_id,
        )
        db.session.commit()
        click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")
    except PasswordValidationError as e:
        db.session.rollback()
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@click.option('--branch-id', type=int, help='Filter by home branch ID')
@with_appcontext
def list_users(branch_id):
    """List all users with their roles."""
    users = db.session.query(User)
    if branch_id:
        users = users.filter_by(branch_id=branch_id)
    users = users.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<24} {'Role':<10} {'Branch':<8} {'Active'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        branch_str = str(user.branch_id) if user.branch_id else "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<24} {user.role:<10} {branch_str:<8} {active_str}")
    click.echo("="*80 + "\n")


@click.group('branches')
def branches_group():
    """Branch management commands."""


@branches_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive branches')
@with_appcontext
def list_branches_cli(include_inactive):
    branches = branch_service.list_branches(include_inactive=include_inactive)
    if not branches:
        click.echo("No branches found.")
        return

    for branch in branches:
        kind = "warehouse" if branch.is_warehouse else "store"
        status = "active" if branch.is_active else "inactive"
        click.echo(f"{branch.id:<5} {branch.code:<10} {branch.name:<30} {kind:<10} {status}")


@branches_group.command('create')
@click.option('--name', required=True, help='Branch name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--address', help='Street address')
@click.option('--phone', help='Phone number')
@click.option('--warehouse', is_flag=True, help='Stock-only branch (no sales)')
@with_appcontext
def create_branch_cli(name, code, address, phone, warehouse):
    try:
        branch = branch_service.create_branch(
            name=name, code=code, address=address, phone=phone, is_warehouse=warehouse,
        )
        db.session.commit()
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}, Code: {branch.code})")
    except ConflictError as e:
        db.session.rollback()
        click.echo(f"FAIL {str(e)}")


@click.group('installments')
def installments_group():
    """Installment plan maintenance."""


@installments_group.command('mark-overdue')
@click.option('--date', 'as_of', type=click.DateTime(formats=["%Y-%m-%d"]), help='Treat this date as today')
@with_appcontext
def mark_overdue_cli(as_of):
    """Flag ACTIVE plans whose next due date is before today as OVERDUE."""
    plans = installment_service.mark_overdue(as_of.date() if as_of else None)
    db.session.commit()

    click.echo(f"PASS Marked {len(plans)} plan(s) overdue")
    for plan in plans:
        click.echo(
            f"     #{plan.id} {plan.customer_name} due {plan.next_due_date.isoformat()} "
            f"remaining {money_str(plan.remaining_amount)}"
        )


@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


@shifts_group.command('list')
@click.option('--branch-id', type=int, help='Filter by branch ID')
@click.option('--open', 'only_open', is_flag=True, help='Only open shifts')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_shifts_cli(branch_id, only_open, limit):
    shifts, total = shift_service.list_shifts(
        branch_id=branch_id,
        is_open=True if only_open else None,
        limit=limit,
    )
    if not shifts:
        click.echo("No shifts found.")
        return

    click.echo(f"{'ID':<6} {'Branch':<7} {'User':<6} {'Status':<7} {'Opened':<22} {'Expected':>12} {'Actual':>12} {'Diff':>10}")
    for shift in shifts:
        click.echo(
            f"{shift.id:<6} {shift.branch_id:<7} {shift.user_id:<6} {shift.status:<7} "
            f"{to_utc_z(shift.opened_at):<22} "
            f"{money_str(shift.expected_cash) or '-':>12} "
            f"{money_str(shift.actual_cash) or '-':>12} "
            f"{money_str(shift.difference) or '-':>10}"
        )
    click.echo(f"\n{len(shifts)} of {total} shift(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(branches_group)
    app.cli.add_command(installments_group)
    app.cli.add_command(shifts_group)
