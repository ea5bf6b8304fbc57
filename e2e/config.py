"""Shared configuration for the end-to-end browser suite.

Values mirror the runner configuration of the web app:

- base URL http://localhost:6001, served by ``PORT=6001 ./bin/whatgotdone``
- 30s per test, 5s per assertion and per action
- one worker, chromium with the "Desktop Chrome" device profile
- trace + video on, HTML report, artifacts under e2e-results/

Setting ``CI`` to any non-empty value forbids ``@pytest.mark.only`` and turns
on two retries per scenario.

Overrides:
    E2E_BASE_URL, E2E_TIMEOUT_MS, PLAYWRIGHT_HEADLESS, E2E_WEB_SERVER_COMMAND,
    E2E_WEB_SERVER_CWD, E2E_REUSE_EXISTING_SERVER, E2E_TRACE, E2E_VIDEO,
    E2E_OUTPUT_DIR
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional
from urllib.parse import urljoin, urlparse

DEFAULT_PORT = 6001
DEFAULT_BASE_URL = f"http://localhost:{DEFAULT_PORT}"
DEFAULT_SERVER_COMMAND = f"PORT={DEFAULT_PORT} ./bin/whatgotdone"

ARTIFACT_MODES = ("on", "off", "retain-on-failure")

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def _truthy(value: Optional[str]) -> bool:
    """Match the JS runner: any non-empty string counts as set."""
    return bool(value)


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.lower() in {"1", "true", "yes"}


def _artifact_mode(name: str, value: str) -> str:
    if value not in ARTIFACT_MODES:
        raise ValueError(
            f"{name} must be one of {', '.join(ARTIFACT_MODES)}, got {value!r}"
        )
    return value


@dataclass
class WebServerSettings:
    """How to boot the system under test."""

    command: str = DEFAULT_SERVER_COMMAND
    port: int = DEFAULT_PORT
    cwd: Path = field(default_factory=Path.cwd)
    timeout_ms: int = 60 * 1000
    reuse_existing_server: bool = False


@dataclass
class BrowserProject:
    """Browser engine plus the Playwright device descriptor it runs with."""

    name: str = "chromium"
    device: str = "Desktop Chrome"

    @property
    def browser_type(self) -> str:
        return self.name


@dataclass
class E2eSettings:
    """Static parameters handed to pytest and Playwright at startup."""

    test_dir: str = "e2e/tests"
    timeout_ms: int = 30 * 1000
    expect_timeout_ms: int = 5 * 1000
    base_url: str = DEFAULT_BASE_URL
    action_timeout_ms: int = 5 * 1000
    navigation_timeout_ms: int = 30 * 1000
    trace: str = "on"
    video: str = "on"
    fully_parallel: bool = True
    ci: bool = False
    forbid_only: bool = False
    retries: int = 0
    workers: int = 1
    reporter: str = "html"
    report_path: str = "playwright-report/index.html"
    projects: List[BrowserProject] = field(default_factory=lambda: [BrowserProject()])
    output_dir: str = "e2e-results/"
    web_server: WebServerSettings = field(default_factory=WebServerSettings)
    headless: bool = True

    def __post_init__(self) -> None:
        _artifact_mode("trace", self.trace)
        _artifact_mode("video", self.video)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "E2eSettings":
        env = os.environ if environ is None else environ
        ci = _truthy(env.get("CI"))

        base_url = env.get("E2E_BASE_URL") or DEFAULT_BASE_URL
        port = urlparse(base_url).port or DEFAULT_PORT

        web_server = WebServerSettings(
            command=env.get("E2E_WEB_SERVER_COMMAND") or f"PORT={port} ./bin/whatgotdone",
            port=port,
            cwd=Path(env.get("E2E_WEB_SERVER_CWD") or Path.cwd()),
            reuse_existing_server=_flag(env.get("E2E_REUSE_EXISTING_SERVER"), False),
        )

        timeout_ms = int(env.get("E2E_TIMEOUT_MS") or 30 * 1000)

        return cls(
            base_url=base_url,
            timeout_ms=timeout_ms,
            navigation_timeout_ms=timeout_ms,
            trace=env.get("E2E_TRACE") or "on",
            video=env.get("E2E_VIDEO") or "on",
            ci=ci,
            forbid_only=ci,
            retries=2 if ci else 0,
            output_dir=env.get("E2E_OUTPUT_DIR") or "e2e-results/",
            web_server=web_server,
            headless=_flag(env.get("PLAYWRIGHT_HEADLESS"), True),
        )

    @property
    def project(self) -> BrowserProject:
        """The project scenarios run against (the first one configured)."""
        return self.projects[0]

    @property
    def host(self) -> str:
        return urlparse(self.base_url).hostname or "localhost"

    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def artifacts_dir(self, nodeid: str) -> Path:
        """Per-test directory under output_dir for trace and video files."""
        name = _UNSAFE_PATH_CHARS.sub("-", nodeid).strip("-")
        return Path(self.output_dir) / name


def describe(cfg: E2eSettings) -> str:
    return (
        f"base_url={cfg.base_url} project={cfg.project.name} ({cfg.project.device}) "
        f"retries={cfg.retries} workers={cfg.workers} forbid_only={cfg.forbid_only}"
    )


# Singleton instance - initialized on first import
settings = E2eSettings.from_env()
print(f"[CONFIG] {describe(settings)}")
