"""
User directory commands.
"""
from datetime import timedelta
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import Session, select

from hookwarden.core.database import engine, init_db
from hookwarden.core.exceptions import UserAlreadyExistsError
from hookwarden.core.security import create_access_token
from hookwarden.models.enums import UserRole
from hookwarden.models.user import User
from hookwarden.services.identity_link_service import IdentityLinkService
from hookwarden.services.user_service import UserService

app = typer.Typer(help="User directory commands")
console = Console()


@app.command("create")
def create_user(
    username: str = typer.Argument(..., help="Login name (stored lowercase)"),
    admin: bool = typer.Option(False, "--admin", help="Grant administrator role"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Group id"),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
):
    """Create a user."""
    init_db()
    with Session(engine) as session:
        try:
            user = UserService(session).create_user(
                username,
                role=UserRole.ADMIN if admin else UserRole.USER,
                group_id=group,
                email=email,
            )
        except UserAlreadyExistsError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
        console.print(f"[green]✓ Created {UserRole(user.role).value} '{user.username}' ({user.id})[/green]")


@app.command("list")
def list_users():
    """List all users."""
    with Session(engine) as session:
        users = session.exec(select(User).order_by(User.username)).all()
        table = Table(title="Users")
        table.add_column("Username", style="cyan")
        table.add_column("Role", style="white")
        table.add_column("Group", style="white")
        table.add_column("Active", style="white")
        for user in users:
            table.add_row(user.username, UserRole(user.role).value, user.group_id or "-", "yes" if user.is_active else "no")
        console.print(table)


@app.command("token")
def issue_access_token(
    username: str = typer.Argument(...),
    minutes: int = typer.Option(60, "--minutes", "-m", help="Token lifetime"),
):
    """Print an API access token for a user (for scripts and testing)."""
    with Session(engine) as session:
        user = UserService(session).get_user_by_username(username)
        if user is None:
            console.print(f"[red]User '{username}' not found[/red]")
            raise typer.Exit(code=1)
        typer.echo(create_access_token(str(user.id), expires_delta=timedelta(minutes=minutes)))


@app.command("link-sso")
def link_sso(
    username: str = typer.Argument(..., help="Internal username"),
    service: str = typer.Argument(..., help="External service, e.g. plex"),
    external_username: str = typer.Argument(...),
    external_id: Optional[str] = typer.Option(None, "--external-id"),
):
    """Record an identity asserted by single sign-on (read-only for the user)."""
    with Session(engine) as session:
        users = UserService(session)
        user = users.get_user_by_username(username)
        if user is None:
            console.print(f"[red]User '{username}' not found[/red]")
            raise typer.Exit(code=1)
        link = IdentityLinkService(session).link_from_sso(user, service, external_username, external_id=external_id)
        console.print(f"[green]✓ Linked {user.username} to {link.service}:{link.external_username}[/green]")
