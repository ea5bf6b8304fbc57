"""Reusable UI workflows for the login and navigation scenarios."""
from __future__ import annotations

import re

from playwright.async_api import Page

from e2e.config import settings

EDIT_URL = re.compile(r"/entry/edit/.+")

DEFAULT_PASSWORD = "password"


async def login_as_user(page: Page, username: str, password: str = DEFAULT_PASSWORD) -> None:
    """Sign in through the login form, like a real user would."""
    await page.goto(settings.url("/login"))

    await page.locator("id=userkit_username").fill(username)
    await page.locator("id=userkit_password").fill(password)
    await page.locator("form button[type='submit']").click()


async def open_account_menu_item(page: Page, name: str) -> None:
    await page.get_by_role("button", name="Account").click()
    await page.get_by_role("menuitem", name=name).click()


async def sign_out(page: Page) -> None:
    await open_account_menu_item(page, "Sign Out")
