"""
cli.py: Click CLI for running and maintaining the portal API.

Usage:
    expertclaims serve --port 3000
    expertclaims hash-password
    expertclaims purge-sessions --dry-run
    expertclaims sessions 6f1c...
"""

from __future__ import annotations

import click
import structlog

from expertclaims_shared.config import settings

from expertclaims_api.utils.logging import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
def main(log_level: str) -> None:
    """ExpertClaims portal API tools."""
    configure_logging(log_level=log_level)


@main.command()
@click.option("--host", default=settings.api_host, show_default=True)
@click.option("--port", default=settings.api_port, type=int, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the API server."""
    import uvicorn

    log.info("server_starting", host=host, port=port)
    uvicorn.run(
        "expertclaims_api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@main.command("hash-password")
@click.password_option(prompt="Password", help="Password to hash (prompted when omitted)")
def hash_password_cmd(password: str) -> None:
    """Print the bcrypt hash for a password, for seeding profiles rows."""
    from expertclaims_shared.security import hash_password, password_problems

    problems = password_problems(password)
    if problems:
        raise click.BadParameter("; ".join(problems), param_hint="password")
    click.echo(hash_password(password))


@main.command("purge-sessions")
@click.option("--dry-run", is_flag=True, help="Only count what would be deleted")
def purge_sessions(dry_run: bool) -> None:
    """Delete expired or revoked sessions and stale login challenges."""
    from expertclaims_api.services import otp_service, session_service

    sessions = session_service.purge(dry_run=dry_run)
    challenges = otp_service.purge_challenges(dry_run=dry_run)
    verb = "Would delete" if dry_run else "Deleted"
    click.echo(f"{verb} {sessions} session(s) and {challenges} login challenge(s).")


@main.command()
@click.argument("user_id")
def sessions(user_id: str) -> None:
    """List a user's sessions with their current state."""
    from expertclaims_api.services import session_service

    records = session_service.list_user_sessions(user_id)
    if not records:
        click.echo("  No sessions found.")
        return
    for record in records:
        expiry = session_service.describe_expiry(record)
        click.echo(
            f"  {record.session_id[:12]:12s} "
            f"{record.role:9s} "
            f"{expiry['state']:8s} "
            f"{expiry['remaining']:>10s}  "
            f"issued {record.issued_at.isoformat()[:19]}"
        )


if __name__ == "__main__":
    main()
