"""CLI tools for basegrid administration."""

import click
from sqlalchemy import func

from basegrid.core.config import settings
from basegrid.core.errors import DomainError
from basegrid.core.security import create_session_token
from basegrid.db.enums import PlatformRole
from basegrid.db.models import User
from basegrid.db.session import DirectSessionLocal, SessionLocal
from basegrid.jobs.trash_purge import run_trash_purge


@click.group()
def cli():
    """basegrid CLI tools."""
    pass


def _find_user(db, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option("--name", "full_name", required=True, help="Display name")
@click.option("--sysadmin", is_flag=True, help="Grant the SYSADMIN platform role")
@click.option("--can-create-bases", is_flag=True, help="Allow the user to create bases")
def create_user(email: str, full_name: str, sysadmin: bool, can_create_bases: bool):
    """
    Create a user account.

    Example:
        basegrid create-user --email "ana@example.com" --name "Ana" --can-create-bases
    """
    db = SessionLocal()
    try:
        if _find_user(db, email):
            click.echo(f"❌ User already exists: {email}")
            return
        user = User(
            email=email.strip().lower(),
            full_name=full_name.strip(),
            platform_role=(PlatformRole.SYSADMIN if sysadmin else PlatformRole.USER).value,
            can_create_bases=can_create_bases or sysadmin,
        )
        db.add(user)
        db.commit()
        click.echo(f"✓ Created user {user.email} (id {user.id}, role {user.platform_role})")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to issue a session token for")
def issue_token(email: str):
    """Print a session token for a user (for API clients and local testing)."""
    db = SessionLocal()
    try:
        user = _find_user(db, email)
        if not user or not user.is_active:
            click.echo(f"❌ User not found: {email}")
            return
        click.echo(create_session_token(user.id, user.token_version))
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        basegrid revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = _find_user(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option(
    "--days",
    type=click.IntRange(min=0),
    default=None,
    help=f"Purge items trashed at least this many days ago (default: {settings.TRASH_RETENTION_DAYS})",
)
def purge_trash(days: int | None):
    """
    Permanently delete items that have been in the trash too long.

    Example:
        basegrid purge-trash --days 30
    """
    db = DirectSessionLocal()
    try:
        result = run_trash_purge(db, days)
    except DomainError as e:
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()

    click.echo(f"✓ Purged items trashed at least {result['days']} days ago")
    for entity, count in result["deleted"].items():
        click.echo(f"  {entity}: {count}")


if __name__ == "__main__":
    cli()
