"""
Query and mutation orchestration for one order list view.

QueryController owns a view's FilterState and its visible QueryResult. Every
filter change follows the same pipeline: apply the pure setter, derive a
QueryRequest, mint a sequence token and dispatch the fetch. Search changes
go through a Debouncer first so typing does not fire a request per
keystroke.

Responses are committed only if their token is still current when they
arrive. A slow response for an older request is dropped, so the visible
page always belongs to the most recently issued request, whatever order
the network answers in.

All methods must be called from the event loop that runs the controller;
there is no locking, since state transitions never interleave within a
synchronous step.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Set, Tuple

from .debounce import Debouncer
from .error_normalizer import ErrorNormalizer, FormFieldSink
from .errors import IdentityUnavailableError
from .filters import (
    FilterState,
    QueryRequest,
    ViewContext,
    derive_request,
    with_assignment_filter,
    with_page,
    with_search,
    with_status,
)
from .models import AssignmentFilter, ControllerStatus, QueryResult, ViewKind, ViewSnapshot
from .scheduling import LoopScheduler, Scheduler
from .sequencing import RequestSequencer

logger = logging.getLogger(__name__)

FetchPage = Callable[[QueryRequest], Awaitable[QueryResult]]
AssignOrder = Callable[[int, int], Awaitable[None]]
Listener = Callable[[ViewSnapshot], None]

FETCH_FALLBACK = "Failed to fetch orders"
ASSIGN_FALLBACK = "Failed to assign order"


class QueryController:
    """
    Drives fetching, filtering and assignment for a single view.

    Attributes:
        kind: ``orders`` (project scoped) or ``assigned`` (acting user's orders)
        context: Identity and scope the view queries with
        filters: Current filter snapshot
        result: Last accepted page of results
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        assign_order: AssignOrder,
        normalizer: ErrorNormalizer,
        kind: ViewKind = ViewKind.ORDERS,
        context: Optional[ViewContext] = None,
        page_size: int = 10,
        search_delay: float = 0.3,
        scheduler: Optional[Scheduler] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.kind = kind
        self.context = context or ViewContext()
        self.filters = FilterState(page_size=page_size)
        self.result = QueryResult(page_size=page_size)
        self.status = ControllerStatus.IDLE
        self.is_loading = False
        self.is_initial_loading = True
        self.error: Optional[str] = None

        self._fetch_page = fetch_page
        self._assign_order = assign_order
        self._normalizer = normalizer
        self._overrides = dict(overrides or {})
        self._sequencer = RequestSequencer()
        self._search = Debouncer(self._commit_search, search_delay, scheduler or LoopScheduler())
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []
        self._disposed = False

    # -- observation -------------------------------------------------------

    def snapshot(self) -> ViewSnapshot:
        return ViewSnapshot(
            items=list(self.result.items),
            total_count=self.result.total_count,
            current_page=self.result.current_page,
            total_pages=self.result.total_pages,
            page_size=self.result.page_size,
            is_loading=self.is_loading,
            is_initial_loading=self.is_initial_loading,
            error=self.error,
            status=self.status,
            search=self.filters.search,
            status_filter=self.filters.status,
            assignment_filter=self.filters.assignment_filter,
            page=self.filters.page,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def search_pending(self) -> bool:
        return self._search.pending

    # -- queries -----------------------------------------------------------

    async def fetch(self, overrides: Optional[Mapping[str, Any]] = None) -> None:
        """
        Fetch the page described by the current filters.

        Does nothing while the view's context is incomplete. Failures are
        recorded on the controller, never raised.
        """
        ticket = self._begin(overrides)
        if ticket is None:
            return
        await self._execute(*ticket)

    async def refetch(self) -> None:
        await self.fetch()

    def activate(self) -> None:
        """Dispatch the first fetch if the context already allows it."""
        self._dispatch()

    def update_context(self, **changes: Any) -> None:
        """
        Replace parts of the view context and fetch if it became usable.

        Accepts ``identity_loaded``, ``user_id`` and ``project_id``.
        """
        context = replace(self.context, **changes)
        if context == self.context:
            return
        self.context = context
        self._dispatch()

    # -- filter setters ----------------------------------------------------

    def set_search(self, search: str, immediate: bool = False) -> None:
        self._search.schedule(search)
        if immediate:
            self._search.flush()

    def set_status(self, status: Optional[str]) -> None:
        self._apply(with_status(self.filters, status))

    def set_assignment_filter(self, assignment_filter: AssignmentFilter) -> None:
        self._apply(with_assignment_filter(self.filters, assignment_filter))

    def set_page(self, page: int) -> None:
        self._apply(with_page(self.filters, page, self.result.total_pages))

    def clear_error(self) -> None:
        self.error = None
        self._emit()

    # -- mutations ---------------------------------------------------------

    async def assign(self, order_id: int, form_sink: Optional[FormFieldSink] = None) -> None:
        """
        Assign an order to the acting user, then refresh the list.

        Raises:
            IdentityUnavailableError: If the acting user is not known yet
            Exception: Whatever the assignment collaborator raised, after it
                has been recorded and surfaced as a notification
        """
        user_id = self.context.user_id
        if user_id is None:
            raise IdentityUnavailableError("User ID not available")

        try:
            await self._assign_order(order_id, user_id)
        except Exception as exc:
            report = self._normalizer.handle(exc, form_sink=form_sink, fallback=ASSIGN_FALLBACK)
            self.error = report.message
            self._emit()
            raise

        logger.debug(f"Order {order_id} assigned to user {user_id}; refreshing")
        await self.refetch()

    # -- lifecycle ---------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait until every dispatched fetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispose(self) -> None:
        self._disposed = True
        self._search.dispose()
        for task in list(self._tasks):
            task.cancel()
        self._listeners.clear()

    # -- internals ---------------------------------------------------------

    def _commit_search(self, search: str) -> None:
        self._apply(with_search(self.filters, search))

    def _apply(self, filters: FilterState) -> None:
        self.filters = filters
        self._dispatch()

    def _dispatch(self) -> None:
        ticket = self._begin(None)
        if ticket is None:
            self._emit()
            return
        task = asyncio.get_running_loop().create_task(self._execute(*ticket))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _begin(self, overrides: Optional[Mapping[str, Any]]) -> Optional[Tuple[int, QueryRequest]]:
        if self._disposed:
            return None
        if not self.context.is_ready_for(self.kind):
            logger.debug(f"Skipping fetch for {self.kind.value} view: context not ready")
            return None

        request = derive_request(self.filters, self.context, self.kind, {**self._overrides, **(overrides or {})})
        token = self._sequencer.begin()
        self.is_loading = True
        self.status = ControllerStatus.LOADING
        self._emit()
        return token, request

    async def _execute(self, token: int, request: QueryRequest) -> None:
        try:
            result = await self._fetch_page(request)
        except Exception as exc:
            self.is_initial_loading = False
            if not self._sequencer.is_current(token):
                logger.debug(f"Dropping failure of superseded request {token}")
                return
            self.error = self._normalizer.describe(exc, FETCH_FALLBACK)
            self.is_loading = False
            self.status = ControllerStatus.ERRORED
            logger.info(f"Fetch {token} failed: {self.error}")
            self._emit()
            return

        self.is_initial_loading = False
        if not self._sequencer.is_current(token):
            logger.debug(f"Dropping response of superseded request {token}")
            return
        self.result = result
        self.error = None
        self.is_loading = False
        self.status = ControllerStatus.READY
        self._emit()

    def _emit(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
