"""Client side of the dev-mode test APIs exposed by the app.

The app, when started in dev mode, exposes a database wipe endpoint and
accepts mock UserKit tokens, so scenarios can reset state and authenticate
without going through the real identity provider.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from playwright.async_api import BrowserContext, Page

from e2e.config import settings

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "userkit_auth_token"
MOCK_TOKEN_PREFIX = "mock_token_for_"
WIPE_DB_PATH = "/api/testing/db/wipe"
CSRF_META_SELECTOR = "meta[name='csrf-token']"


@dataclass
class FixtureApiError(Exception):
    """Raised when a dev-mode test API call is rejected."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __str__(self) -> str:
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


def mock_token(username: str) -> str:
    return f"{MOCK_TOKEN_PREFIX}{username}"


def auth_cookie(value: str) -> Dict[str, Any]:
    """Cookie record for the UserKit token on the app's host."""
    return {
        "name": AUTH_COOKIE_NAME,
        "value": value,
        "domain": settings.host,
        "path": "/",
    }


async def csrf_token(page: Page) -> str:
    """CSRF token rendered into the index page, or "" if there is none."""
    meta = page.locator(CSRF_META_SELECTOR)
    if await meta.count() == 0:
        return ""
    return await meta.first.get_attribute("content") or ""


async def wipe_db(page: Page) -> None:
    """Reset all server-side state before a scenario."""
    await page.goto(settings.url("/"))
    headers = {}
    token = await csrf_token(page)
    if token:
        headers["X-CSRF-Token"] = token

    response = await page.request.post(settings.url(WIPE_DB_PATH), headers=headers)
    if not response.ok:
        raise FixtureApiError(
            name="wipe_db",
            payload={"url": response.url, "status": response.status},
            message=await response.text(),
        )
    logger.debug("Wiped database via %s", WIPE_DB_PATH)


async def mock_login_as_user(page: Page, username: str) -> None:
    """Authenticate as ``username`` without entering credentials.

    The bare route redirects an authenticated user to their edit page, so the
    page ends up on /entry/edit/<date>.
    """
    await page.context.add_cookies([auth_cookie(mock_token(username))])
    await page.goto(settings.url("/"))
    logger.debug("Logged in as %s with a mock token", username)


async def expire_auth_token(context: BrowserContext, value: str = "some-invalid-value") -> None:
    """Simulate a UserKit cookie going stale."""
    await context.add_cookies([auth_cookie(value)])
