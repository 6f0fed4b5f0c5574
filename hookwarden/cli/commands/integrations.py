"""
Integration commands: register integrations and manage webhook tokens.
"""
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import Session

from hookwarden.core.database import engine, init_db
from hookwarden.core.exceptions import (
    IntegrationAlreadyExistsError,
    IntegrationNotFoundError,
    UnknownIntegrationTypeError,
)
from hookwarden.integrations.catalog import TEST_EVENT
from hookwarden.services.dispatch import get_dispatch_transport
from hookwarden.services.integration_service import IntegrationService
from hookwarden.services.notification_router import InboundEvent, NotificationRouter, RoutingStatus
from hookwarden.services.share_service import ShareRule
from hookwarden.services.webhook_token_service import WebhookTokenService

app = typer.Typer(help="Integration commands")
console = Console()


@app.command("create")
def create_integration(
    integration_id: str = typer.Argument(..., help="Integration id, e.g. overseerr"),
    integration_type: Optional[str] = typer.Option(None, "--type", "-t", help="Catalog type (defaults to id)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name"),
):
    """Register an integration with catalog default events."""
    init_db()
    with Session(engine) as session:
        try:
            integration = IntegrationService(session).create_integration(
                integration_id, integration_type=integration_type, display_name=name
            )
        except (IntegrationAlreadyExistsError, UnknownIntegrationTypeError) as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
        console.print(f"[green]✓ Created integration '{integration.id}' ({integration.integration_type})[/green]")


@app.command("list")
def list_integrations():
    """List integrations with their share rule and token state."""
    with Session(engine) as session:
        tokens = WebhookTokenService(session)
        table = Table(title="Integrations")
        table.add_column("Id", style="cyan")
        table.add_column("Type", style="white")
        table.add_column("Shared", style="white")
        table.add_column("Token", style="white")
        for integration in IntegrationService(session).list_integrations():
            rule = ShareRule.from_integration(integration)
            shared = rule.mode.value if not rule.targets else f"{rule.mode.value}: {', '.join(sorted(rule.targets))}"
            info = tokens.describe(integration.id)
            token = "-" if info is None else (info.masked if info.is_enabled else f"{info.masked} (revoked)")
            table.add_row(integration.id, integration.integration_type, shared, token)
        console.print(table)


@app.command("issue-token")
def issue_token(integration_id: str = typer.Argument(...)):
    """Issue a new webhook token. The previous token stops working immediately."""
    with Session(engine) as session:
        try:
            issued = WebhookTokenService(session).issue(integration_id)
        except IntegrationNotFoundError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
        console.print("[yellow]Store this token now; it cannot be shown again.[/yellow]")
        typer.echo(issued.token)


@app.command("send-test")
def send_test(
    integration_id: str = typer.Argument(...),
    token: str = typer.Option(..., "--token", prompt=True, hide_input=True),
):
    """Route a test event through the integration, as if the sender had pinged it."""
    with Session(engine) as session:
        router = NotificationRouter(session, get_dispatch_transport(session))
        outcome = router.process(InboundEvent(integration_id=integration_id, event_type=TEST_EVENT), token)
        if outcome.status == RoutingStatus.REJECTED:
            console.print("[red]Webhook token rejected[/red]")
            raise typer.Exit(code=1)
        console.print(f"[green]✓ Test delivered to {len(outcome.test_recipients)} administrator(s)[/green]")
