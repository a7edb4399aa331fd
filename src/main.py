"""
Main CLI interface for the GCP billing watcher.

Provides commands to show the current billing status once, watch it on a
refresh interval, configure the project and open the billing console.
"""

import asyncio
import json
import logging
import sys

import click
from dynaconf.validator import ValidationError

from .config.settings import get_config, save_project_id, validate_project_id
from .i18n.messages import get_messages, resolve_language
from .monitoring.alerts import AlertLevel
from .monitoring.text_alerts import LEVEL_COLORS, RenderedStatus
from .monitoring.watcher import BillingWatcher
from .providers.base import CostMetrics

# Set up logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

CONSOLE_URL = "https://console.cloud.google.com/billing/linkedaccount?project={project_id}"

# Icinga/Nagios style exit codes per alert level
EXIT_CODES = {
    AlertLevel.NORMAL: 0,
    AlertLevel.WARNING: 1,
    AlertLevel.CRITICAL: 2,
    AlertLevel.ERROR: 3,
    AlertLevel.UNCONFIGURED: 3,
}


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity settings."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        # Default behavior: only show results and errors
        logging.getLogger().setLevel(logging.ERROR)

    # Configure library loggers to reduce noise
    library_loggers = ["google.auth", "httpx", "httpcore", "urllib3"]

    for logger_name in library_loggers:
        library_logger = logging.getLogger(logger_name)
        library_logger.setLevel(logging.INFO if verbose else logging.ERROR)


def _echo_status(status: RenderedStatus, show_tooltip: bool = True):
    click.echo(click.style(status.summary_line, fg=LEVEL_COLORS[status.alert_level], bold=True))
    if show_tooltip:
        click.echo(status.tooltip)


@click.group()
@click.option("--config", "-c", "config_file", help="Path to an additional configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging and debug output")
@click.option("--project", help="GCP project ID override")
@click.option("--dataset", help="Billing export dataset ID override")
@click.option("--budget", type=float, help="Monthly budget override (0 disables the budget)")
@click.option(
    "--language",
    type=click.Choice(["auto", "en", "ja"]),
    help="Display language override",
)
@click.pass_context
def cli(ctx, config_file, verbose, project, dataset, budget, language):
    """GCP Billing Watcher - Track Google Cloud costs from the billing export."""
    setup_logging(verbose)

    # Ensure context object exists
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    try:
        config = get_config()
        if config_file:
            config.load_file(config_file)
        config.override_from_cli(
            {"project": project, "dataset": dataset, "budget": budget, "language": language}
        )
    except (ValidationError, OSError, ValueError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    ctx.obj["config"] = config


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print metrics and alert level as JSON")
@click.pass_context
def status(ctx, as_json):
    """Fetch billing data once and show the current status."""
    config = ctx.obj["config"]
    watcher = BillingWatcher(config)

    state = asyncio.run(watcher.refresh())
    rendered = watcher.render()

    if as_json:
        result = {
            "alert_level": rendered.alert_level.value,
            "summary": rendered.summary_line,
            "metrics": state.to_dict() if isinstance(state, CostMetrics) else None,
            "error": rendered.tooltip if rendered.alert_level == AlertLevel.ERROR else None,
        }
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        _echo_status(rendered)

    sys.exit(EXIT_CODES[rendered.alert_level])


@cli.command()
@click.option("--interval", type=int, help="Refresh interval in minutes")
@click.pass_context
def watch(ctx, interval):
    """Refresh billing data periodically and print every update."""
    config = ctx.obj["config"]
    if interval is not None:
        config.override_from_cli({"interval": interval})

    watcher = BillingWatcher(config)
    messages = get_messages(watcher.language)
    watcher.add_update_callback(_echo_status)

    click.echo(messages.watch_started.format(watcher.refresh_interval_minutes))
    try:
        asyncio.run(watcher.run())
    except KeyboardInterrupt:
        click.echo(messages.watch_stopped)


@cli.command()
@click.argument("project_id", required=False)
@click.pass_context
def configure(ctx, project_id):
    """Set the GCP project ID used for billing queries."""
    config = ctx.obj["config"]
    messages = get_messages(resolve_language(config.language))

    if not project_id:
        project_id = click.prompt(messages.project_id_prompt, default="", show_default=False)
    project_id = project_id.strip()

    if not project_id:
        click.echo(messages.project_id_required, err=True)
        sys.exit(1)
    if not validate_project_id(project_id):
        click.echo(messages.project_id_invalid, err=True)
        sys.exit(1)

    path = save_project_id(project_id)
    config.override_from_cli({"project": project_id})
    click.echo(f"{messages.project_id_set}{project_id}")
    logger.debug(f"Project ID written to {path}")


@cli.command()
@click.option("--open", "open_browser", is_flag=True, help="Open the console in a browser")
@click.pass_context
def console(ctx, open_browser):
    """Show the Google Cloud billing console URL for the configured project."""
    config = ctx.obj["config"]
    if not config.is_configured:
        messages = get_messages(resolve_language(config.language))
        click.echo(messages.not_configured_tooltip, err=True)
        sys.exit(EXIT_CODES[AlertLevel.UNCONFIGURED])

    url = CONSOLE_URL.format(project_id=config.project_id)
    click.echo(url)
    if open_browser:
        click.launch(url)


if __name__ == "__main__":
    cli()
