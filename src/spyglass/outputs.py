"""Report writing and console presentation.

write_report() persists a run record as JSON; print_crawl_summary() renders a
CrawlResult with Rich (a per-category count table plus short previews of the
lists worth reading first).
"""

import json
from pathlib import Path
from typing import Any

import aiofiles
from rich.console import Console
from rich.table import Table

from spyglass.crawler import CrawlResult

PREVIEW_LIMIT = 10

SUMMARY_ROWS = (
    ("robots Links", "robots_count"),
    ("Sitemap Links", "sitemap_count"),
    ("CSS Links", "css_count"),
    ("JavaScript Links", "js_count"),
    ("Internal Links", "internal_count"),
    ("External Links", "external_count"),
    ("Image Links", "images_count"),
    ("URLs inside Sitemaps", "sitemap_url_count"),
    ("URLs inside JavaScript", "js_url_count"),
    ("Total Unique Links", "total_unique"),
    ("High-Signal URLs", "high_signal_count"),
)


async def write_report(path: Path, run: dict[str, Any]) -> Path:
    """Write a run record as indented JSON.

    Args:
        path: Destination file; parent directories are created
        run: Run record (``{"target": ..., "modules": {...}}``)

    Returns:
        The path written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(run, indent=2))
    return path


def build_summary_table(result: CrawlResult) -> Table:
    """Per-category counts of a successful crawl."""
    table = Table(title=f"Crawl Summary: {result.target.effective}")
    table.add_column("Category", style="cyan")
    table.add_column("Count", style="white", justify="right")

    stats = result.stats
    for label, key in SUMMARY_ROWS:
        table.add_row(label, str(getattr(stats, key, 0) if stats else 0))
    return table


def print_links_preview(
    console: Console, title: str, links: list[str], limit: int = PREVIEW_LIMIT
) -> None:
    """Print the first ``limit`` links with a trailing ``... N more`` line."""
    if not links:
        return

    console.print(f"\n[bold]{title}[/] ({len(links)})")
    for link in links[:limit]:
        console.print(f"  {link}", markup=False, highlight=False)
    remaining = len(links) - limit
    if remaining > 0:
        console.print(f"  [dim]... {remaining} more[/]")


def print_crawl_summary(console: Console, result: CrawlResult) -> None:
    """Render a crawl result: target line, anchor decision, counts and previews."""
    target = result.target
    console.print()
    console.print(f"[bold]Target:[/] {target.original}", highlight=False)
    if target.reanchored:
        console.print(f"[yellow]Re-anchored to:[/] {target.effective} ({target.reason_code})")
    else:
        console.print(f"[dim]Anchor: {target.reason_code}[/]")

    if result.error is not None:
        console.print(f"[red]Crawl error:[/] {result.error}")
        return

    console.print()
    console.print(build_summary_table(result))

    print_links_preview(console, "JavaScript Links", result.js_links)
    print_links_preview(console, "URLs inside JavaScript", result.urls_inside_js)
    print_links_preview(console, "URLs inside Sitemaps", result.urls_inside_sitemap)
    if result.stats is not None:
        print_links_preview(console, "High-Signal URLs", result.stats.high_signal_urls)
