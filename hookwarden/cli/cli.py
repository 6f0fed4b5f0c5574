"""
Main CLI application using Typer.

Entry point: python -m hookwarden.cli
CLI Name: hookwarden-admin
"""
import typer

from hookwarden import __version__ as app_version
from hookwarden.cli.commands import integrations, users

app = typer.Typer(
    name="hookwarden-admin",
    help="Hookwarden Admin CLI - bootstrap users, integrations and webhook tokens",
)


@app.command()
def version():
    """Show CLI version information."""
    typer.echo(f"Hookwarden CLI version {app_version}")


app.add_typer(users.app, name="users")
app.add_typer(integrations.app, name="integrations")
