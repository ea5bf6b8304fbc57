"""
Direct Playwright client for the whatgotdone scenarios.

Launches the configured browser engine in-process and hands out isolated
contexts that already carry the base URL, the device profile and the default
timeouts from ``e2e.config``.

Usage:
    async with PlaywrightClient() as client:
        context = await client.new_context()
        page = await context.new_page()
        await page.goto("/")
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright, expect

from e2e.config import E2eSettings, settings as default_settings

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class PlaywrightClient:
    """
    Owns one Playwright driver and one launched browser.

    Each call to ``new_context`` gives a fresh cookie jar, so scenarios never
    share authentication state.
    """

    def __init__(self, cfg: Optional[E2eSettings] = None) -> None:
        self.settings = cfg or default_settings
        project = self.settings.project
        if project.browser_type not in SUPPORTED_BROWSERS:
            raise ValueError(f"Unsupported browser project: {project.browser_type}")

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Start the driver and launch the project's browser."""
        self._playwright = await async_playwright().start()
        browser_type = getattr(self._playwright, self.settings.project.browser_type)
        self._browser = await browser_type.launch(headless=self.settings.headless)
        expect.set_options(timeout=self.settings.expect_timeout_ms)

    def context_options(self, record_video_dir: Optional[Path] = None) -> Dict[str, Any]:
        """Device descriptor plus base URL, in ``new_context`` keyword form."""
        if not self._playwright:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        options = dict(self._playwright.devices[self.settings.project.device])
        # Only meaningful to launch(), not to new_context().
        options.pop("default_browser_type", None)
        options["base_url"] = self.settings.base_url
        if record_video_dir is not None:
            options["record_video_dir"] = str(record_video_dir)
        return options

    async def new_context(self, record_video_dir: Optional[Path] = None, **overrides: Any) -> BrowserContext:
        """
        Create an isolated browser context.

        Args:
            record_video_dir: Directory for the context's video, or None
            **overrides: Extra ``new_context`` options (win over the device profile)
        """
        options = self.context_options(record_video_dir)
        options.update(overrides)
        context = await self.browser.new_context(**options)
        context.set_default_timeout(self.settings.action_timeout_ms)
        context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
        return context

    async def close(self) -> None:
        """Close the browser and stop the driver."""
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Client not connected")
        return self._browser
