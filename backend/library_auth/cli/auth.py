"""Flask CLI commands for member accounts and signing secrets."""

from __future__ import annotations

import base64
import logging
import secrets

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from library_auth.core.extensions import db
from library_auth.infra.jwt.signer import MIN_KEY_BYTES
from library_auth.models.member import Member
from library_auth.repositories.member import MemberRepository
from library_auth.services.auth.dto import Role

LOGGER = logging.getLogger(__name__)


@click.group("auth")
def auth_cli() -> None:
    """Member and token-secret administration."""


@auth_cli.command("create-member")
@click.argument("username")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role], case_sensitive=False),
    default=Role.USER.value,
    show_default=True,
)
@click.password_option("--password", help="Password for the new member.")
@with_appcontext
def create_member(username: str, role: str, password: str) -> None:
    """Create a member account with a hashed password."""
    repo = MemberRepository()
    if repo.exists_by_username(username):
        raise click.UsageError(f"Member {username.strip()!r} already exists.")

    member = Member(username=username, role=Role(role.upper()))
    try:
        member.password = password
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--password") from exc

    try:
        repo.add(member)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise click.UsageError(f"Member {username.strip()!r} already exists.") from exc

    LOGGER.info("member created", extra={"event": "cli.member.created", "principal": member.username})
    click.echo(f"Created {member.role.value} member {member.username!r}.")


@auth_cli.command("generate-secret")
@click.option("--bytes", "length", type=int, default=MIN_KEY_BYTES, show_default=True)
def generate_secret(length: int) -> None:
    """Print a random base64url secret for JWT_ACCESS_SECRET / JWT_REFRESH_SECRET."""
    if length < MIN_KEY_BYTES:
        raise click.BadParameter(f"must be at least {MIN_KEY_BYTES}", param_hint="--bytes")
    raw = secrets.token_bytes(length)
    click.echo(base64.urlsafe_b64encode(raw).rstrip(b"=").decode())
