"""pytest plugin applying the runner configuration to a test session.

Loaded from the root conftest (``pytest_plugins``) or with ``-p e2e.plugin``.

- ``@pytest.mark.only`` focuses a run on the marked tests; with ``CI`` set the
  marker is forbidden and the run aborts.
- tests marked ``e2e`` get the per-test timeout (pytest-timeout, test body
  only, fixture setup excluded) and, on CI, retries (pytest-rerunfailures).
- the HTML report (pytest-html) is written to ``playwright-report/``.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pytest

from e2e.config import E2eSettings, describe

settings_key = pytest.StashKey[E2eSettings]()
phase_report_key = pytest.StashKey[Dict[str, pytest.TestReport]]()


def get_settings(config: pytest.Config) -> E2eSettings:
    return config.stash[settings_key]


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:
    """Register markers and point pytest-html at the report path.

    Runs first so pytest-html sees the path when it configures itself.
    """
    config.addinivalue_line("markers", "e2e: browser scenario against the running app")
    config.addinivalue_line("markers", "only: run only the tests carrying this marker")

    cfg = E2eSettings.from_env()
    config.stash[settings_key] = cfg

    if cfg.reporter == "html" and config.pluginmanager.hasplugin("html"):
        if not config.getoption("htmlpath", default=None):
            Path(cfg.report_path).parent.mkdir(parents=True, exist_ok=True)
            config.option.htmlpath = cfg.report_path
            config.option.self_contained_html = True


def pytest_report_header(config: pytest.Config) -> str:
    return f"e2e: {describe(get_settings(config))}"


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    cfg = get_settings(config)

    focused = [item for item in items if item.get_closest_marker("only")]
    if focused:
        if cfg.forbid_only:
            names = ", ".join(item.nodeid for item in focused)
            raise pytest.UsageError(f"@pytest.mark.only is not allowed on CI: {names}")
        deselected = [item for item in items if not item.get_closest_marker("only")]
        config.hook.pytest_deselected(items=deselected)
        items[:] = focused

    has_timeout = config.pluginmanager.hasplugin("timeout")
    has_reruns = config.pluginmanager.hasplugin("rerunfailures")
    for item in items:
        if not item.get_closest_marker("e2e"):
            continue
        if has_timeout and not item.get_closest_marker("timeout"):
            item.add_marker(pytest.mark.timeout(cfg.timeout_ms / 1000, func_only=True))
        if has_reruns and cfg.retries and not item.get_closest_marker("flaky"):
            item.add_marker(pytest.mark.flaky(reruns=cfg.retries))


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call):
    outcome = yield
    report = outcome.get_result()
    item.stash.setdefault(phase_report_key, {})[report.when] = report


def item_failed(item: pytest.Item) -> bool:
    """True when any phase of the test recorded so far failed."""
    reports = item.stash.get(phase_report_key, {})
    return any(report.failed for report in reports.values())

