from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from apps.extractor.client import StripeClient

BASE_URL = "https://api.test/v1/events"


def make_event(event_id: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "id": event_id,
        "object": "event",
        "type": "customer.subscription.updated",
        "data": {"object": payload or {"id": f"sub_{event_id}", "status": "active"}},
    }


def make_pages(page_count: int, per_page: int, always_more: bool = False) -> list[dict[str, Any]]:
    pages = []
    for p in range(page_count):
        events = [make_event(f"evt_{p}_{i}") for i in range(per_page)]
        has_more = always_more or p < page_count - 1
        pages.append({"object": "list", "data": events, "has_more": has_more})
    return pages


class PagedApi:
    """Serves pages keyed by the `starting_after` cursor and records requests."""

    def __init__(self, pages: list[dict[str, Any]]) -> None:
        self.pages = pages
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        query = parse_qs(urlsplit(str(request.url)).query)
        cursor = query.get("starting_after", [None])[0]

        index = 0
        if cursor is not None:
            for i, page in enumerate(self.pages):
                if page["data"] and page["data"][-1]["id"] == cursor:
                    index = i + 1
                    break
        return httpx.Response(200, json=self.pages[min(index, len(self.pages) - 1)])


@pytest.fixture
def make_client():
    def factory(handler, **kwargs) -> StripeClient:
        client = StripeClient(
            "sk_test_123",
            base_url=BASE_URL,
            page_delay=0,
            retry_wait=0,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
        client.set_start_date("2023-07-01")
        client.set_category_selector("customer.subscription.*")
        return client

    return factory
