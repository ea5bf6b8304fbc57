"""
Draft editing scenarios.

The edit page pulls the user's latest draft from /api/draft/<date> and then
auto-saves every change back with PUT. Drafts are private and must never leak
onto the Recent page.

Run with: pytest e2e/tests/test_entry_draft.py -v
"""
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from playwright.async_api import expect

from e2e.config import settings
from e2e.helpers import mock_login_as_user, wipe_db
from e2e.matchers import DRAFT_GET, DRAFT_PUT, DraftSyncFailure
from e2e.workflows import EDIT_URL

pytestmark = [pytest.mark.e2e]


@pytest_asyncio.fixture(autouse=True)
async def clean_database(page):
    await wipe_db(page)


class TestDraftAutoSave:
    """Drafts save themselves and stay private."""

    @pytest.mark.asyncio
    async def test_logs_in_and_saves_a_draft(self, page):
        async with page.expect_request(DRAFT_GET) as draft_get:
            await mock_login_as_user(page, "staging_jimmy")

            await expect(page).to_have_url(EDIT_URL)

        # Wait for page to pull down any previous entry.
        await draft_get.value

        entry_text = "Saved a private draft at " + datetime.now(timezone.utc).isoformat()

        async with page.expect_request(DRAFT_PUT) as draft_put:
            await page.get_by_role("textbox").clear()
            await page.get_by_role("textbox").fill(entry_text)

            # Wait for auto-save to complete.
            await expect(page.locator(".save-draft")).to_contain_text("Changes Saved")
        await draft_put.value

        # User should stay on the same page after saving a draft.
        await expect(page).to_have_url(EDIT_URL)

        await page.get_by_role("link", name="Recent").click()
        await expect(page).to_have_url(settings.url("/recent"))

        # Private drafts should not appear on the recent page.
        await expect(page.locator("#app")).not_to_contain_text(entry_text)


class TestDraftSyncFailure:
    """The editor must not overwrite server state it has not synced yet."""

    @pytest.mark.asyncio
    async def test_withholds_editor_until_draft_is_synced(self, page):
        failure = DraftSyncFailure(status=500)
        await page.route(settings.url("/api/draft/*"), failure.handle)

        await mock_login_as_user(page, "staging_jimmy")
        await expect(page).to_have_url(EDIT_URL)

        await expect(page.locator(".journal-markdown")).not_to_be_visible()
        await expect(page.locator(".save-draft")).not_to_be_visible()
        await expect(page.locator(".entry-form")).not_to_be_visible()

        assert failure.calls["GET"] > 0, "Editor never tried to fetch the draft"
        assert failure.calls["POST"] == 0, "Editor created a draft before syncing"
