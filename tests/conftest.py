"""Shared test fixtures for Patchforge."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

import httpx
import pytest

from patchforge.config import Settings
from patchforge.core.catalog_fetcher import CatalogFetcher
from patchforge.core.command_runner import CommandResult, CommandRunner
from patchforge.models.catalog import CatalogEntry

UPDATE_HISTORY_URL = "https://support.example.test/windows-11-update-history"

UPDATE_HISTORY_HTML = """
<html><body>
<nav>
  <a class="supLeftNavLink" data-bi-slot="1" href="/help/5043145">September 26, 2024&#x2014;KB5043145 (OS Builds 22621.4249 and 22631.4249) Preview</a>
  <a class="supLeftNavLink" data-bi-slot="2" href="/help/5043076">September 10, 2024—KB5043076 (OS Builds 22621.4169 and 22631.4169)</a>
  <a class="supLeftNavLink" data-bi-slot="3" href="/help/5041585">August 13, 2024—KB5041585 (OS Builds 22621.4037 and 22631.4037)</a>
  <a class="other-link" href="/help/unrelated">Windows 11 release information</a>
  <a class="supLeftNavLink" data-bi-slot="4" href="/help/5040442">July 9, 2024—KB5040442 (OS Builds 22621.3880 and 22631.3880)</a>
  <a class="supLeftNavLink" data-bi-slot="5" href="/help/5043076">September 10, 2024—KB5043076 (OS Builds 22621.4169 and 22631.4169)</a>
</nav>
</body></html>
"""

GITHUB_RELEASES_JSON: list[dict[str, Any]] = [
    {
        "tag_name": "v2.48.0-rc1.windows.1",
        "name": "Git for Windows 2.48.0-rc1",
        "published_at": "2024-12-18T10:00:00Z",
        "prerelease": True,
        "draft": False,
    },
    {
        "tag_name": "v2.47.1.windows.1",
        "name": "Git for Windows 2.47.1",
        "published_at": "2024-11-25T10:00:00Z",
        "prerelease": False,
        "draft": False,
    },
    {
        "tag_name": "v2.47.0.windows.2",
        "name": "Git for Windows 2.47.0(2)",
        "published_at": "2024-10-22T10:00:00Z",
        "prerelease": False,
        "draft": False,
    },
    {
        "tag_name": "v2.46.2.windows.1",
        "name": "Git for Windows 2.46.2",
        "published_at": "2024-09-24T10:00:00Z",
        "prerelease": False,
        "draft": False,
    },
]


class FakeRunner(CommandRunner):
    """CommandRunner that replays scripted results instead of spawning processes.

    ``responses`` maps a command prefix (argv joined by spaces) to a result
    or a list of results consumed in order.  The longest matching prefix
    wins.  ``tools`` limits which binaries ``which`` can find; ``None``
    means every tool is present.
    """

    def __init__(
        self,
        responses: dict[str, CommandResult | list[CommandResult]] | None = None,
        tools: set[str] | None = None,
        env_overrides: dict[str, str] | None = None,
        calls: list[tuple[list[str], dict[str, str]]] | None = None,
    ) -> None:
        super().__init__(timeout=5, env_overrides=env_overrides)
        self.responses = responses if responses is not None else {}
        self.tools = tools
        self.calls = calls if calls is not None else []

    def with_env(self, updates: dict[str, str]) -> FakeRunner:
        return FakeRunner(
            self.responses,
            self.tools,
            {**self.env_overrides, **updates},
            self.calls,
        )

    def which(self, tool: str) -> str | None:
        if self.tools is not None and tool not in self.tools:
            return None
        return f"/usr/bin/{tool}"

    def run(self, argv: list[str], *, timeout: int | None = None) -> CommandResult:
        self.calls.append((list(argv), self.env_overrides))
        line = " ".join(argv)
        matches = [key for key in self.responses if line.startswith(key)]
        if not matches:
            return CommandResult(argv=argv, error=f"no scripted response for {line!r}")
        scripted = self.responses[max(matches, key=len)]
        if isinstance(scripted, list):
            if not scripted:
                return CommandResult(argv=argv, error=f"scripted responses exhausted for {line!r}")
            return scripted.pop(0)
        return scripted


def ok(stdout: str = "", argv: list[str] | None = None) -> CommandResult:
    return CommandResult(argv=argv or ["fake"], returncode=0, stdout=stdout)


def failed(stderr: str = "boom", returncode: int = 1, argv: list[str] | None = None) -> CommandResult:
    return CommandResult(argv=argv or ["fake"], returncode=returncode, stderr=stderr)


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    """Factory fixture: build a FakeRunner from scripted responses."""

    def _factory(
        responses: dict[str, CommandResult | list[CommandResult]] | None = None,
        tools: set[str] | None = None,
    ) -> FakeRunner:
        return FakeRunner(responses, tools)

    return _factory


@pytest.fixture
def ok_result() -> Callable[..., CommandResult]:
    return ok


@pytest.fixture
def failed_result() -> Callable[..., CommandResult]:
    return failed


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        update_history_url=UPDATE_HISTORY_URL,
        github_api_url="https://api.github.test",
        http_timeout_seconds=1.0,
    )


def _default_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/windows-11-update-history":
        return httpx.Response(200, text=UPDATE_HISTORY_HTML)
    if request.url.path == "/repos/git-for-windows/git/releases":
        return httpx.Response(200, json=GITHUB_RELEASES_JSON)
    return httpx.Response(404)


@pytest.fixture
def http_client() -> httpx.Client:
    """httpx client backed by a MockTransport serving canned catalogs."""
    client = httpx.Client(transport=httpx.MockTransport(_default_handler))
    yield client
    client.close()


@pytest.fixture
def fetcher(http_client: httpx.Client, make_runner: Callable[..., FakeRunner]) -> CatalogFetcher:
    return CatalogFetcher(
        http_client,
        runner=make_runner(),
        github_api_url="https://api.github.test",
    )


@pytest.fixture
def kb_catalog() -> list[CatalogEntry]:
    """Two cumulative updates, newest first."""
    return [
        CatalogEntry(identifier="KB5043076", release_date=date(2024, 9, 10)),
        CatalogEntry(identifier="KB5041585", release_date=date(2024, 8, 13)),
    ]
