# Overview: Flask CLI command groups for bootstrap, user management, and maintenance.

# backend/tripdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--password secret123]
#   Create missing tables and a default global admin "admin" (idempotent).
# - python -m flask system seed-demo
#   Add a sample client, price table, products and an open trip.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username maria --email maria@example.com --first-name Maria --role admin --module orders --module clients
# - python -m flask users set-password maria
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired and revoked sessions.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product, Trip
from .permissions import ALL_MODULES, ROLE_ADMIN, ROLE_GLOBAL_ADMIN, VALID_ROLES
from .services import auth_service, client_service, maintenance_service, session_service
from .services.auth_service import PasswordValidationError
from .validation import ValidationError, ConflictError
from .time_utils import utcnow


DEFAULT_ADMIN_PASSWORD = "admin123"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--username', default='admin', show_default=True)
@click.option('--email', default='admin@tripdesk.local', show_default=True)
@click.option('--password', default=DEFAULT_ADMIN_PASSWORD, help='Initial password for the admin user')
@with_appcontext
def init_system(username, email, password):
    """
    Create tables that do not exist yet and a default global admin.

    Safe to run more than once. Change the default password immediately.
    """
    click.echo("START Initializing TripDesk...")
    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        click.echo(f"WARN  User '{username}' already exists, skipping...")
    else:
        try:
            auth_service.create_user(
                username=username,
                email=email,
                password=password,
                first_name="Administrator",
                role=ROLE_GLOBAL_ADMIN,
                permissions=list(ALL_MODULES),
            )
        except (ValidationError, ConflictError) as e:
            raise click.ClickException(f"Failed to create user '{username}': {e}")
        click.echo(f"PASS Created global admin: {username} ({email})")
        if password == DEFAULT_ADMIN_PASSWORD:
            click.echo("SECURITY Default password in use - change it with: flask users set-password " + username)

    click.echo("DONE")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Sample data for local development."""
    if client_service.get_client_by_cnpj("12.345.678/0001-90"):
        click.echo("WARN  Demo data already present, skipping...")
        return

    client = client_service.create_client({
        "legal_name": "Demo Comercio de Roupas LTDA",
        "trade_name": "Demo Store",
        "cnpj": "12.345.678/0001-90",
        "street": "Rua das Flores",
        "number": "100",
        "district": "Centro",
        "city": "Sao Paulo",
        "state": "SP",
        "zip_code": "01000-000",
        "phones": "(11) 99999-0000",
        "email": "compras@demo.example",
        "contact_person": "Ana",
    })
    for size, price in (("P", "25.00"), ("M", "27.50"), ("G", "30.00")):
        client_service.upsert_client_price(client.id, size, price)

    for size in ("P", "M", "G"):
        for color in ("Black", "White"):
            db.session.add(Product(name="Basic T-Shirt", color=color, size=size, is_active=True))

    db.session.add(Trip(name="First trip", start_date=utcnow().date(), status="open"))
    db.session.commit()

    click.echo(f"PASS Demo client '{client.trade_name}' (CNPJ {client.cnpj}), 6 products, 1 open trip")


@click.group('users')
def users_group():
    """Staff user commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = auth_service.list_users()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        modules = ", ".join(user.permissions or []) or "-"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<13} {status:<9} {modules}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--first-name', prompt=True)
@click.option('--last-name', default='')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default=ROLE_ADMIN, show_default=True)
@click.option('--module', 'modules', multiple=True, type=click.Choice(ALL_MODULES), help='Module key (repeatable)')
@with_appcontext
def create_user_cli(username, email, first_name, last_name, password, role, modules):
    try:
        user = auth_service.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=role,
            permissions=list(modules),
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('set-password')
@click.argument('username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def set_password_cli(username, password):
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")
    try:
        auth_service.set_password(user.id, password)
    except PasswordValidationError as e:
        raise click.ClickException(str(e))
    revoked = session_service.revoke_all_user_sessions(user.id, reason="Password changed")
    click.echo(f"PASS Password updated for {username}; {revoked} session(s) revoked")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
