"""
Storefront CI - Main Entry Point
CLI interface for the storefront release pipeline.

Commands map onto the workflows of the repository:
- check / acceptance: integration gate and browser suite
- preview: pull request previews
- production: merge queue gate
- rollback: automatic or manual production rollback
- dispatch: route whatever event started the current Actions run
"""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from storefront_ci.config import get_config
from storefront_ci.core.logger import setup_logging
from storefront_ci.core.security import SecretsMasker, SecurityError
from storefront_ci.integrations.actions import ActionsContext, TriggerEvent
from storefront_ci.models.revision import Revision
from storefront_ci.models.run import PipelineRun, PipelineStatus, TriggerKind

# CLI app
app = typer.Typer(
    name="storefront-ci",
    help="🛍️ Storefront release pipeline - previews, merge-queue gate and rollback",
    add_completion=False,
)

console = Console()

STATUS_COLORS = {
    PipelineStatus.PASS: "green",
    PipelineStatus.BLOCKED: "yellow",
    PipelineStatus.FAIL: "red",
    PipelineStatus.RUNNING: "white",
}


def print_header(subtitle: str):
    """Print the application header."""
    console.print(Panel.fit(
        "[bold blue]Storefront CI[/bold blue]\n"
        f"[dim]{subtitle}[/dim]",
        border_style="blue",
    ))


def _prepare(verbose: bool, output_json: bool, subtitle: str):
    # with --json, stdout carries only the report
    console.stderr = output_json
    setup_logging(verbose, machine_output=output_json)
    if not output_json:
        print_header(subtitle)

    config = get_config()
    for secret in (config.deploy.token, config.github.token, config.store.storefront_api_token):
        SecretsMasker.register(secret)
    return config


def _exit_code(status: PipelineStatus) -> int:
    """Blocked runs are deliberate no-ops and do not fail the job."""
    return 1 if status == PipelineStatus.FAIL else 0


def _finish_run(run: PipelineRun, output_json: bool, publish: bool = True):
    if publish:
        from storefront_ci.agents.orchestrator import PipelineOrchestrator

        PipelineOrchestrator(actions=ActionsContext()).publish(run)

    if output_json:
        typer.echo(json.dumps(SecretsMasker.mask_dict(run.to_dict()), indent=2))
    else:
        _print_run(run)

    raise typer.Exit(_exit_code(run.status))


def _fail(error: Exception, verbose: bool):
    if verbose:
        console.print_exception()
    else:
        console.print(f"[red]Error:[/red] {SecretsMasker.mask_secrets(str(error))}")
    raise typer.Exit(1)


@app.command()
def check(
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url", "-u",
        help="Live URL to run the acceptance suite against (skipped when omitted)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """
    🔍 Install, lint, type-check and build; optionally run the acceptance suite.

    Example:
        storefront-ci check
        storefront-ci check --base-url https://preview.example.myshopify.dev
    """
    config = _prepare(verbose, output_json, "Integration check")

    from storefront_ci.agents.integration_check import IntegrationCheckAgent

    try:
        result = asyncio.run(IntegrationCheckAgent().run(base_url=base_url or config.acceptance.base_url))
    except Exception as e:
        _fail(e, verbose)

    if output_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        table = Table(title="Integration Check")
        table.add_column("Step", style="cyan")
        table.add_column("Status")
        table.add_column("Duration")
        table.add_column("Detail")
        icons = {"passed": "✅", "failed": "❌", "skipped": "⏭️"}
        for step in result.steps:
            table.add_row(
                step.step.value,
                f"{icons[step.status.value]} {step.status.value}",
                f"{step.duration_seconds:.1f}s",
                (step.detail.splitlines() or ["-"])[-1][:60],
            )
        console.print(table)

    raise typer.Exit(0 if result.success else 1)


@app.command()
def acceptance(
    base_url: str = typer.Option(
        ...,
        "--base-url", "-u",
        envvar="BASE_URL",
        help="Storefront URL to test",
    ),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """
    🧪 Run the browser acceptance suite against a deployed storefront.

    Example:
        storefront-ci acceptance --base-url https://shop.example.com
    """
    _prepare(verbose, output_json, "Acceptance suite")

    from storefront_ci.acceptance.suite import AcceptanceSuite

    suite = AcceptanceSuite(headless=False) if headed else AcceptanceSuite()
    try:
        result = asyncio.run(suite.run(base_url))
    except SecurityError as e:
        _fail(e, verbose)

    if output_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        table = Table(title=f"Acceptance: {base_url}")
        table.add_column("Scenario", style="cyan")
        table.add_column("Status")
        table.add_column("Duration")
        table.add_column("Error")
        for scenario in result.scenarios:
            table.add_row(
                scenario.name,
                "✅" if scenario.passed else "❌",
                f"{scenario.duration_seconds:.1f}s",
                (scenario.error or "-")[:60],
            )
        console.print(table)
        for error in result.errors:
            console.print(f"[red]Error:[/red] {error}")

    raise typer.Exit(0 if result.passed else 1)


@app.command()
def preview(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """
    👀 Publish a preview for the pull request that triggered this run.

    Reads the pull request from GITHUB_EVENT_PATH. Pull requests from forks
    are blocked (exit 0) since deployment secrets are unavailable to them.
    """
    _prepare(verbose, output_json, "Preview publisher")

    from storefront_ci.agents.preview_publisher import PreviewPublisher

    event = TriggerEvent.from_actions_env()
    if event.kind != TriggerKind.PULL_REQUEST:
        console.print(f"[red]Error:[/red] preview needs a pull_request event, got {event.kind.value}")
        raise typer.Exit(1)

    try:
        run = asyncio.run(PreviewPublisher().run(event))
    except Exception as e:
        _fail(e, verbose)

    _finish_run(run, output_json)


@app.command()
def production(
    revision: Optional[str] = typer.Option(
        None,
        "--revision", "-r",
        help="Revision to release (defaults to the merge group head or GITHUB_SHA)",
    ),
    parent: Optional[str] = typer.Option(
        None,
        "--parent",
        help="Known-good predecessor used for rollback",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """
    🚀 Check, deploy and verify a revision in production.

    Any failure exits 1 (blocking the merge) and requests a rollback.
    """
    _prepare(verbose, output_json, "Production publisher")

    from storefront_ci.agents.production_publisher import ProductionPublisher

    event = TriggerEvent.from_actions_env()
    if revision:
        target = Revision(sha=revision, parent_sha=parent)
    elif event.revision:
        target = Revision(sha=event.revision.sha, parent_sha=parent or event.revision.parent_sha)
    else:
        console.print("[red]Error:[/red] no revision given and none found in the event")
        raise typer.Exit(1)

    try:
        run = asyncio.run(ProductionPublisher().run(target, trigger=event.kind))
    except Exception as e:
        _fail(e, verbose)

    _finish_run(run, output_json)


@app.command()
def rollback(
    failed_revision: Optional[str] = typer.Option(
        None,
        "--failed-revision", "-f",
        help="Revision whose release failed; its predecessor is redeployed",
    ),
    revision: Optional[str] = typer.Option(
        None,
        "--revision", "-r",
        help="Revision to redeploy (manual rollback)",
    ),
    reason: str = typer.Option("manual rollback", "--reason", help="Reason, for notifications"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """
    ⏪ Redeploy the last known-good revision to production.

    Example:
        storefront-ci rollback --failed-revision 9f2c1e0
        storefront-ci rollback --revision 4b1d7aa --reason "bad banner copy"
    """
    _prepare(verbose, output_json, "Rollback")

    if not failed_revision and not revision:
        console.print("[red]Error:[/red] pass --failed-revision or --revision")
        raise typer.Exit(1)

    from storefront_ci.agents.orchestrator import PipelineOrchestrator

    orchestrator = PipelineOrchestrator()
    try:
        run = asyncio.run(orchestrator.run_rollback(
            failed_revision=failed_revision,
            target_revision=revision,
            reason=reason,
        ))
    except Exception as e:
        _fail(e, verbose)

    orchestrator.publish(run)
    _finish_run(run, output_json, publish=False)


@app.command()
def dispatch(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """
    🔀 Route the event that started this Actions run to its pipeline.
    """
    _prepare(verbose, output_json, "Dispatch")

    from storefront_ci.agents.orchestrator import PipelineOrchestrator

    event = TriggerEvent.from_actions_env()
    try:
        run = asyncio.run(PipelineOrchestrator().dispatch(event))
    except Exception as e:
        _fail(e, verbose)

    _finish_run(run, output_json, publish=False)


@app.command("config")
def show_config(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    🔧 Show the effective configuration with secrets masked.
    """
    config = _prepare(False, output_json, "Configuration")
    data = SecretsMasker.mask_dict(config.to_dict())

    if output_json:
        typer.echo(json.dumps(data, indent=2))
    else:
        table = Table(title="Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        for section, values in data.items():
            if isinstance(values, dict):
                for key, value in values.items():
                    table.add_row(f"{section}.{key}", str(value) if value not in (None, "") else "-")
            else:
                table.add_row(section, str(values))
        console.print(table)

    issues = config.validate()
    if issues and not output_json:
        console.print("\n[yellow]Configuration warnings:[/yellow]")
        for issue in issues:
            console.print(f"  • {issue}")


def _print_run(run: PipelineRun):
    """Print a pipeline run report."""
    color = STATUS_COLORS.get(run.status, "white")

    console.print(Panel(
        f"[bold {color}]{run.status.value.upper()}[/bold {color}]\n"
        f"Duration: {run.total_duration_seconds:.2f}s",
        title=f"Run: {run.run_id}",
        border_style=color,
    ))

    if run.stages:
        table = Table(title="Pipeline Stages")
        table.add_column("Stage", style="cyan")
        table.add_column("Status")
        table.add_column("Duration")
        table.add_column("Message")

        icons = {"passed": "✅", "failed": "❌", "skipped": "⏭️"}
        for stage in run.stages:
            table.add_row(
                stage.stage.value,
                icons[stage.outcome.value],
                f"{stage.duration_seconds:.1f}s",
                (stage.error or stage.message or "-")[:60],
            )
        console.print(table)

    if run.deployment_url:
        console.print(f"\n[bold green]🚀 Deployed to:[/bold green] {run.deployment_url}")

    if run.rollback_requested:
        console.print("\n[bold yellow]⏪ Rollback requested[/bold yellow]")

    for error in run.errors:
        console.print(f"  [red]•[/red] {SecretsMasker.mask_secrets(error)}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
