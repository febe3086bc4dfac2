"""Command line interface.

CLI module using Typer with Rich-formatted output for the crawl and validate
commands. Crawl results are rendered as a summary table plus link previews and
can be saved as a JSON run record.
"""

# ruff: noqa: B008

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from spyglass import __version__
from spyglass.config import CrawlerConfig, load_config
from spyglass.context import ScanContext
from spyglass.crawler import CrawlResult, run_crawler
from spyglass.exceptions import ConfigError
from spyglass.outputs import print_crawl_summary, write_report
from spyglass.scope import is_http_url
from spyglass.utils import setup_logging

install_rich_traceback(show_locals=True)

console = Console()

app = typer.Typer(
    name="spyglass",
    help="Spyglass - reconnaissance crawler that maps and ranks a target's linked resources",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Spyglass version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Spyglass - reconnaissance crawler that maps and ranks a target's linked resources."""
    pass


async def _crawl(context: ScanContext, output: Path | None) -> CrawlResult:
    result = await run_crawler(context)
    if output is not None:
        await write_report(output, context.run)
    return result


@app.command()
def crawl(
    target: str = typer.Argument(..., help="Target URL (http:// or https://)"),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML config file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    verify_ssl: bool | None = typer.Option(
        None,
        "--verify-ssl/--no-verify-ssl",
        help="Override TLS certificate verification",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Override per-request timeout in seconds",
        min=0.1,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the run record as JSON to this file",
    ),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        help="Also write log records to this file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Verbose logging",
    ),
) -> None:
    """Crawl a target and report the resources it links to.

    Profiles the target's redirect behavior, fetches the main page, extracts
    robots, sitemap, stylesheet, script, anchor and image links, expands
    sitemaps and scripts, and ranks the result by security relevance.
    A target whose main page cannot be fetched is reported, not treated as a failure.
    """
    if not is_http_url(target):
        console.print(f"[red]Error:[/red] Target must be an http(s) URL: {target}")
        raise typer.Exit(code=1)

    try:
        if config is not None:
            console.print(f"[cyan]Loading configuration from:[/cyan] {config}")
            crawler_config = load_config(config)
        else:
            crawler_config = CrawlerConfig()

        if verify_ssl is not None:
            crawler_config.verify_ssl = verify_ssl
        if timeout is not None:
            crawler_config.timeout = timeout

        setup_logging(verbose=verbose, log_file=log_file)

        console.print(f"[green]Starting crawl:[/green] {target}")
        context = ScanContext(target=target, config=crawler_config)
        result = asyncio.run(_crawl(context, output))

        print_crawl_summary(console, result)
        if output is not None:
            console.print(f"\n[green][OK][/] Run record written to: [cyan]{output}[/]")

    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(code=1) from None

    except KeyboardInterrupt:
        console.print("\n[yellow]Crawl interrupted by user[/yellow]")
        raise typer.Exit(code=130) from None

    except OSError as e:
        console.print(f"[red]Could not write report:[/red] {e}")
        raise typer.Exit(code=1) from None


@app.command()
def validate(
    config_path: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="Path to YAML config file to validate",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Validate a Spyglass configuration file.

    Checks YAML syntax and validates all configuration fields against
    the schema. Displays detailed error messages if validation fails.
    """
    try:
        console.print(f"[cyan]Validating configuration:[/cyan] {config_path}")

        crawler_config = load_config(config_path)

        console.print("[green][OK] Configuration is valid![/green]\n")

        table = Table(title="Configuration Summary")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Timeout", f"{crawler_config.timeout}s")
        table.add_row("Verify SSL", "Yes" if crawler_config.verify_ssl else "No")
        table.add_row("User-Agent", crawler_config.user_agent)
        table.add_row("Max Retries", str(crawler_config.max_retries))
        for name, value in crawler_config.limits.model_dump().items():
            table.add_row(name.replace("_", " ").title(), str(value))

        console.print(table)

    except ConfigError as e:
        console.print("[red][FAIL] Configuration validation failed:[/red]\n")
        console.print(str(e), markup=False)
        raise typer.Exit(code=1) from None
