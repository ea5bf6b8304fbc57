import pytest
import pytest_asyncio

from e2e import recording
from e2e.config import settings
from e2e.playwright_client import PlaywrightClient
from e2e.plugin import item_failed
from e2e.web_server import WebServer, require_app


@pytest.fixture(scope="session")
def web_server():
    """Boot the app once per session, or reuse one that is already running.

    Scenarios are skipped when the app binary has not been built and nothing
    listens on the configured port. On CI that is an error instead.
    """
    server = WebServer(settings.web_server, settings.base_url)
    require_app(server, ci=settings.ci)
    with server:
        yield server


@pytest_asyncio.fixture()
async def playwright_client(web_server):
    """Create a Playwright client instance."""
    async with PlaywrightClient(settings) as client:
        yield client


@pytest_asyncio.fixture()
async def context(playwright_client, request):
    """Isolated browser context with trace and video capture per test."""
    artifacts = settings.artifacts_dir(request.node.nodeid)

    ctx = await playwright_client.new_context(
        record_video_dir=recording.video_dir(settings.video, artifacts)
    )
    await recording.start_trace(ctx, settings.trace)

    yield ctx

    await recording.finish(
        ctx,
        trace=settings.trace,
        video=settings.video,
        artifacts=artifacts,
        failed=item_failed(request.node),
    )


@pytest_asyncio.fixture()
async def page(context):
    """A fresh page in the test's context."""
    return await context.new_page()
