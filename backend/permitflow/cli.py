# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/permitflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Full idempotent bootstrap: creates tables, permissions, system roles and default users.
# - python -m flask system init-roles
#   Create the system roles only (ADMIN, FIREMAN, REQUESTOR).
# - python -m flask system init-permissions
#   Create the permission catalogue only.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email fireman@permitflow.local --password "Password123!" --first-name Fire --last-name Man --role FIREMAN
#   Create a user (prompts if options are omitted).
#
# Permission inspection/repair:
# - python -m flask perms list --module permits
#   List permissions (optionally filtered by role or module).
# - python -m flask perms check admin@permitflow.local can_approve
#   Check a capability name (can_*) or a permission key (module.action) for a user.
# - python -m flask perms grant-user requestor@permitflow.local permits.delete --reason "Cleanup duty"
#   Grant a permission to one user (per-user override).
# - python -m flask perms grant-user requestor@permitflow.local permits.create --deny
#   Deny a permission for one user even if the role grants it.
# - python -m flask perms revoke-user requestor@permitflow.local permits.delete
#   Remove a per-user override.
#
# Roles:
# - python -m flask roles list
#   List roles with their permission bundles.
#
# Permits:
# - python -m flask permits auto-close
#   Close every approved/extended/reapproved permit whose end time has passed.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.
# - python -m flask maintenance cleanup-audit-logs --retention-days 90
#   Delete audit log entries older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import PermitflowError
from .extensions import db
from .models import User
from .permissions import CAPABILITIES, PERMISSION_DEFINITIONS, SystemRole
from .services.auth_service import create_user, PasswordValidationError
from .services import lifecycle_service
from .services import maintenance_service
from .services import permission_service
from .services import role_service
from .services import session_service


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("admin@permitflow.local", "System", "Admin", SystemRole.ADMIN),
    ("fireman@permitflow.local", "Fire", "Man", SystemRole.FIREMAN),
    ("requestor@permitflow.local", "Permit", "Requestor", SystemRole.REQUESTOR),
]


def _find_user(email):
    return db.session.query(User).filter_by(email=email.strip().lower()).first()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the permit system: tables, permissions, system roles, default users.

    Creates:
    - Permission catalogue
    - Roles: ADMIN, FIREMAN, REQUESTOR
    - Users: admin@, fireman@, requestor@permitflow.local
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing permit system...")

    db.create_all()

    perm_count = permission_service.initialize_permissions()
    click.echo(f"PASS Created {perm_count} permissions")

    role_count = role_service.initialize_default_roles()
    click.echo(f"PASS Created {role_count} system roles")

    click.echo("\nUSERS Creating default users...")
    for email, first_name, last_name, role_name in DEFAULT_USERS:
        if _find_user(email):
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            create_user(email, DEFAULT_PASSWORD, first_name, last_name, role_name)
            click.echo(f"PASS Created user: {email} with role '{role_name}'")
        except PermitflowError as e:
            click.echo(f"FAIL Failed to create user '{email}': {e}")

    click.echo("\n" + "="*60)
    click.echo("DONE Permit System Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for email, _, _, role_name in DEFAULT_USERS:
        click.echo(f"   {role_name:<10} -> {email:<28} / {DEFAULT_PASSWORD}")
    click.echo("")


@system_group.command('init-roles')
@with_appcontext
def init_roles():
    """Create the system roles (idempotent)."""
    count = role_service.initialize_default_roles()
    click.echo(f"PASS Created {count} system roles")


@system_group.command('init-permissions')
@with_appcontext
def init_permissions():
    """Create the permission catalogue (idempotent)."""
    count = permission_service.initialize_permissions()
    click.echo(f"PASS Created {count} permissions")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<24} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        role_str = user.role.name if user.role else "none"
        click.echo(f"{user.id:<5} {user.email:<32} {user.full_name:<24} {active_str:<8} {role_str}")

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--first-name', prompt=True)
@click.option('--last-name', prompt=True)
@click.option('--role', 'role_name', default=SystemRole.REQUESTOR, show_default=True)
@click.option('--department', default=None)
@with_appcontext
def create_user_cli(email, password, first_name, last_name, role_name, department):
    """Create a user (password hashed with bcrypt)."""
    try:
        user = create_user(email, password, first_name, last_name, role_name, department=department)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        return
    except PermitflowError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created user {user.email} (ID: {user.id}) with role '{user.role.name}'")


@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('list')
@click.option('--role', 'role_name', default=None, help='Only keys granted to this role')
@click.option('--module', default=None, help='Only keys in this module')
@with_appcontext
def list_permissions_cli(role_name, module):
    """List permission keys."""
    definitions = PERMISSION_DEFINITIONS

    if role_name:
        try:
            role = role_service.get_role_by_name(role_name)
        except PermitflowError as e:
            click.echo(f"FAIL {e}")
            return
        granted = set(role.permissions or [])
        definitions = [d for d in definitions if d[0] in granted]

    if module:
        definitions = [d for d in definitions if d[2] == module.lower()]

    for key, name, mod, action in definitions:
        click.echo(f"{key:<24} {mod:<12} {action:<10} {name}")
    click.echo(f"\nTotal: {len(definitions)}")


@perms_group.command('check')
@click.argument('email')
@click.argument('name')
@with_appcontext
def check_permission_cli(email, name):
    """Check a capability (can_*) or a permission key for a user."""
    user = _find_user(email)

    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    authz = permission_service.get_authorization(user)
    allowed = authz.check(name) if name in CAPABILITIES else authz.has_permission(name)

    if allowed:
        click.echo(f"PASS User '{email}' HAS '{name}'")
    else:
        click.echo(f"FAIL User '{email}' DOES NOT HAVE '{name}'")

    click.echo(f"\nRole: {authz.principal.role} ({authz.principal.effective_role.value})")
    click.echo(f"Total permissions: {len(authz.principal.permissions)}")


@perms_group.command('grant-user')
@click.argument('email')
@click.argument('permission_key')
@click.option('--deny', is_flag=True, help='Record a DENY override instead of GRANT')
@click.option('--reason', default=None)
@with_appcontext
def grant_user_permission_cli(email, permission_key, deny, reason):
    """Grant (or deny) one permission key for one user."""
    user = _find_user(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    try:
        override = permission_service.grant_permission_override(
            user_id=user.id,
            permission_key=permission_key,
            override_type="DENY" if deny else "GRANT",
            reason=reason,
        )
    except PermitflowError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS {override.override_type} '{permission_key}' for '{email}'")


@perms_group.command('revoke-user')
@click.argument('email')
@click.argument('permission_key')
@with_appcontext
def revoke_user_permission_cli(email, permission_key):
    """Remove a per-user permission override."""
    user = _find_user(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    if permission_service.revoke_permission_override(user_id=user.id, permission_key=permission_key):
        click.echo(f"PASS Removed override '{permission_key}' for '{email}'")
    else:
        click.echo(f"WARN  No active override '{permission_key}' for '{email}'")


@click.group('roles')
def roles_group():
    """Role inspection commands."""


@roles_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive roles')
@with_appcontext
def list_roles_cli(include_inactive):
    roles = role_service.list_roles(include_inactive=include_inactive)
    if not roles:
        click.echo("No roles found. Run: flask system init-roles")
        return

    for role in roles:
        kind = "system" if role.is_system else "custom"
        click.echo(f"{role.name:<16} {kind:<8} {len(role.users):>3} users  {role.display_name}")
        click.echo(f"    {', '.join(role.permissions or []) or '(no permissions)'}")


@click.group('permits')
def permits_group():
    """Permit lifecycle commands."""


@permits_group.command('auto-close')
@with_appcontext
def auto_close_cli():
    """Close every active permit whose end time has passed."""
    closed = lifecycle_service.auto_close_expired()
    if not closed:
        click.echo("PASS No permits due for auto-close")
        return
    for permit in closed:
        click.echo(f"PASS Auto-closed {permit.permit_number}")
    click.echo(f"\nTotal: {len(closed)}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} sessions")


@maintenance_group.command('cleanup-audit-logs')
@click.option('--retention-days', default=90, show_default=True, type=int)
@with_appcontext
def cleanup_audit_logs_cli(retention_days):
    """Delete audit log entries older than the retention window."""
    deleted = maintenance_service.cleanup_audit_logs(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} audit log entries")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(roles_group)
    app.cli.add_command(permits_group)
    app.cli.add_command(maintenance_group)
