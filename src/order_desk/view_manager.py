"""
Registry of live order list views.

Each view the UI opens gets its own QueryController, which exclusively owns
that view's filters and results for as long as the view lives. The
ViewManager creates controllers with the shared collaborators (the orders
client and the process-wide ErrorNormalizer), hands them out by id and
disposes them when the view closes.

The registry is only touched from the event loop serving requests, so it
needs no locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import uuid4

from .error_normalizer import ErrorNormalizer
from .filters import ViewContext
from .models import ViewKind, ViewSummary
from .query_controller import AssignOrder, FetchPage, QueryController
from .scheduling import Scheduler


@dataclass
class ViewRecord:
    """
    A registered view and the controller serving it.

    Attributes:
        id: Unique view identifier (hex UUID)
        kind: Which list the view shows
        created_at: Registration timestamp (UTC)
        controller: The view's QueryController
    """

    id: str
    kind: ViewKind
    created_at: datetime
    controller: QueryController

    def to_summary(self) -> ViewSummary:
        context = self.controller.context
        return ViewSummary(
            id=self.id,
            kind=self.kind,
            created_at=self.created_at,
            status=self.controller.status,
            user_id=context.user_id,
            project_id=context.project_id,
        )


class ViewManager:
    """
    Creates, tracks and disposes view controllers.

    Attributes:
        page_size: Page size for ``orders`` views
        assigned_page_size: Page size for ``assigned`` views
        search_delay: Debounce window for search input, in seconds
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        assign_order: AssignOrder,
        normalizer: ErrorNormalizer,
        page_size: int = 10,
        assigned_page_size: int = 100,
        search_delay: float = 0.3,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.page_size = page_size
        self.assigned_page_size = assigned_page_size
        self.search_delay = search_delay
        self._fetch_page = fetch_page
        self._assign_order = assign_order
        self._normalizer = normalizer
        self._scheduler = scheduler
        self._views: Dict[str, ViewRecord] = {}

    def list_views(self) -> list[ViewSummary]:
        records = sorted(self._views.values(), key=lambda r: r.created_at, reverse=True)
        return [record.to_summary() for record in records]

    def get_view(self, view_id: str) -> Optional[QueryController]:
        record = self._views.get(view_id)
        return record.controller if record else None

    def create_view(self, kind: ViewKind, context: ViewContext) -> ViewSummary:
        """
        Register a new view and start its first fetch.

        The first fetch is dispatched immediately if the context already
        allows it; otherwise it waits for update_context(). Must be called
        from a running event loop.
        """
        page_size = self.assigned_page_size if kind is ViewKind.ASSIGNED else self.page_size
        controller = QueryController(
            self._fetch_page,
            self._assign_order,
            self._normalizer,
            kind=kind,
            context=context,
            page_size=page_size,
            search_delay=self.search_delay,
            scheduler=self._scheduler,
        )
        record = ViewRecord(id=uuid4().hex, kind=kind, created_at=datetime.now(timezone.utc), controller=controller)
        self._views[record.id] = record
        controller.activate()
        return record.to_summary()

    def close_view(self, view_id: str) -> bool:
        record = self._views.pop(view_id, None)
        if record is None:
            return False
        record.controller.dispose()
        return True

    def close_all(self) -> None:
        for view_id in list(self._views):
            self.close_view(view_id)
