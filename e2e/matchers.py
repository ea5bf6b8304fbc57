"""Request predicates and route handlers used to observe or fake the draft API."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass

from playwright.async_api import Request, Route

logger = logging.getLogger(__name__)

DRAFT_API = "/api/draft"


@dataclass(frozen=True)
class RequestMatcher:
    """Matches requests whose URL contains ``url_fragment`` sent with ``method``.

    Instances are plain callables, so they can be passed straight to
    ``page.expect_request``.
    """

    url_fragment: str
    method: str

    def __call__(self, request: Request) -> bool:
        return self.url_fragment in request.url and request.method.upper() == self.method.upper()


DRAFT_GET = RequestMatcher(DRAFT_API, "GET")
DRAFT_PUT = RequestMatcher(DRAFT_API, "PUT")
DRAFT_POST = RequestMatcher(DRAFT_API, "POST")


class DraftSyncFailure:
    """Route handler that makes every draft fetch fail.

    GET requests are answered with ``status`` without reaching the server.
    All other methods go through untouched. Calls are counted per method so a
    scenario can assert which writes were attempted.

    Usage:
        failure = DraftSyncFailure()
        await page.route(settings.url("/api/draft/*"), failure.handle)
        ...
        assert failure.calls["POST"] == 0
    """

    def __init__(self, status: int = 500) -> None:
        self.status = status
        self.calls: Counter = Counter()

    async def handle(self, route: Route) -> None:
        method = route.request.method.upper()
        self.calls[method] += 1
        if method == "GET":
            logger.debug("Failing draft fetch %s with HTTP %d", route.request.url, self.status)
            await route.fulfill(status=self.status)
            return
        await route.continue_()
