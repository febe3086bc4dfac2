"""Scan context shared between the crawler and the orchestration layer."""

from dataclasses import dataclass, field
from typing import Any

from spyglass.config import CrawlerConfig
from spyglass.http_client import HttpFetcher
from spyglass.utils import unique


def new_run_record(target: str) -> dict[str, Any]:
    """Empty run record; module results are stored under ``modules``."""
    return {"target": target, "modules": {}}


@dataclass
class ScanContext:
    """Everything one scan run shares between modules.

    Attributes:
        target: URL being scanned (already validated as http/https)
        config: Crawler configuration
        fetcher: Optional shared fetcher; the crawler creates its own when None
        run: Run record; ``run["modules"][name]`` holds each module's result
        artifacts: Flattened values exported for findings, diffing and export
    """

    target: str
    config: CrawlerConfig = field(default_factory=CrawlerConfig)
    fetcher: HttpFetcher | None = None
    run: dict[str, Any] = field(default_factory=dict)
    artifacts: dict[str, list[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.run:
            self.run = new_run_record(self.target)
        self.run.setdefault("modules", {})

    @property
    def modules(self) -> dict[str, Any]:
        return self.run["modules"]

    def target_profile_snapshot(self) -> dict[str, Any] | None:
        """Profile stored by an upstream headers module, if any."""
        headers = self.modules.get("headers")
        if not isinstance(headers, dict):
            return None
        profile = headers.get("target_profile")
        return profile if isinstance(profile, dict) else None

    def add_artifact(self, name: str, values: list[str]) -> None:
        """Merge values into a named artifact list, keeping first-seen order."""
        self.artifacts[name] = unique([*self.artifacts.get(name, []), *values])
