"""
Pytest configuration and fixtures for Order Desk tests.
"""

import asyncio
import os

import pytest

# Keep the app away from any real backend configured in the environment
os.environ["ORDER_DESK_API_URL"] = "http://orders.test"

from order_desk.error_normalizer import ErrorNormalizer
from order_desk.filters import QueryRequest, ViewContext
from order_desk.models import Order, QueryResult, ViewKind
from order_desk.query_controller import QueryController
from order_desk.scheduling import ManualScheduler


def make_result(first_id: int = 1, count: int = 3, page: int = 1, total_pages: int = 5, page_size: int = 10) -> QueryResult:
    """Build a page of orders whose ids start at ``first_id``."""
    return QueryResult(
        items=[Order(id=first_id + i, order_identifier=f"ORD-{first_id + i}") for i in range(count)],
        total_count=total_pages * page_size,
        current_page=page,
        total_pages=total_pages,
        page_size=page_size,
    )


class FakeBackend:
    """
    Stand-in for the orders REST client.

    In auto mode fetches answer immediately; otherwise each fetch waits on
    a future the test resolves, in any order it likes.
    """

    def __init__(self, auto: bool = True):
        self.auto = auto
        self.requests: list[QueryRequest] = []
        self.pending: list[asyncio.Future] = []
        self.assignments: list[tuple[int, int]] = []
        self.fetch_error: Exception | None = None
        self.assign_error: Exception | None = None
        self.assign_gate: asyncio.Event | None = None

    async def fetch_page(self, request: QueryRequest) -> QueryResult:
        self.requests.append(request)
        if not self.auto:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            return await future
        if self.fetch_error is not None:
            raise self.fetch_error
        return make_result(first_id=request.page * 100, page=request.page, page_size=request.page_size)

    async def assign_order(self, order_id: int, user_id: int) -> None:
        if self.assign_gate is not None:
            await self.assign_gate.wait()
        self.assignments.append((order_id, user_id))
        if self.assign_error is not None:
            raise self.assign_error


async def drain(rounds: int = 5) -> None:
    """Let ready tasks run without advancing any timers."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def shown():
    """Notifications emitted through the normalizer's sink, as (message, kind) pairs."""
    return []


@pytest.fixture
def normalizer(scheduler, shown):
    return ErrorNormalizer(
        notification_sink=lambda message, kind: shown.append((message, kind)),
        scheduler=scheduler,
        cooldown=5,
        field_mapping={"Name": "name"},
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def ready_context():
    return ViewContext(identity_loaded=True, user_id=7, project_id=3)


@pytest.fixture
def make_controller(backend, normalizer, scheduler, ready_context):
    """Factory for controllers wired to the fake backend and manual clock."""

    def factory(context=None, kind=ViewKind.ORDERS, **kwargs):
        return QueryController(
            backend.fetch_page,
            backend.assign_order,
            normalizer,
            kind=kind,
            context=ready_context if context is None else context,
            search_delay=300,
            scheduler=scheduler,
            **kwargs,
        )

    return factory
