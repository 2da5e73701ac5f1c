"""
Filter state and query derivation for order list views.

FilterState is an immutable snapshot of what the user wants to see. Every
setter here is a pure function returning a new snapshot; changing the
search text, the status or the assignment filter always sends the user back
to page 1, since the old page number means nothing under new criteria.

derive_request() turns a FilterState plus the view's context into the
QueryRequest handed to the fetch collaborator. The same inputs always
derive an equal request.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from .errors import UnknownOverrideError
from .models import AssignmentFilter, ViewKind
from .utils import clamp


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    status: str = ""
    assignment_filter: AssignmentFilter = AssignmentFilter.ALL
    page: int = 1
    page_size: int = 10

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be > 0")


@dataclass(frozen=True)
class ViewContext:
    """
    Identity and scope a view needs before it may query.

    Attributes:
        identity_loaded: Whether the acting user's profile has been resolved
        user_id: The acting user, once known
        project_id: The selected project scope, once chosen
    """

    identity_loaded: bool = False
    user_id: Optional[int] = None
    project_id: Optional[int] = None

    def is_ready_for(self, kind: ViewKind) -> bool:
        if not self.identity_loaded:
            return False
        if kind is ViewKind.ASSIGNED:
            return self.user_id is not None
        return self.project_id is not None


@dataclass(frozen=True)
class QueryRequest:
    page: int
    page_size: int
    search: Optional[str] = None
    status: Optional[str] = None
    project_id: Optional[int] = None
    assigned_to: Optional[int] = None
    unassigned_only: bool = False
    priority: Optional[int] = None


_REQUEST_FIELDS = frozenset(f.name for f in fields(QueryRequest))


def with_search(state: FilterState, search: str) -> FilterState:
    return replace(state, search=search, page=1)


def with_status(state: FilterState, status: Optional[str]) -> FilterState:
    return replace(state, status=status or "", page=1)


def with_assignment_filter(state: FilterState, assignment_filter: AssignmentFilter) -> FilterState:
    return replace(state, assignment_filter=AssignmentFilter(assignment_filter), page=1)


def with_page(state: FilterState, page: int, total_pages: int) -> FilterState:
    """Move to ``page``, clamped into ``1..total_pages`` (page 1 when nothing is known yet)."""
    return replace(state, page=clamp(page, 1, total_pages))


def derive_request(
    state: FilterState,
    context: ViewContext,
    kind: ViewKind = ViewKind.ORDERS,
    overrides: Optional[Mapping[str, Any]] = None,
) -> QueryRequest:
    """
    Build the outgoing query for a filter snapshot.

    Args:
        state: Current filter snapshot
        context: Identity and scope of the owning view
        kind: ``assigned`` views always query the acting user's orders and
            ignore the assignment filter; ``orders`` views are project scoped
        overrides: Field values that replace the derived ones

    Returns:
        A QueryRequest; equal inputs give equal requests

    Raises:
        UnknownOverrideError: If an override names an unknown field
    """
    assigned_to: Optional[int] = None
    unassigned_only = False
    project_id = context.project_id

    if kind is ViewKind.ASSIGNED:
        assigned_to = context.user_id
    else:
        if state.assignment_filter is AssignmentFilter.ASSIGNED_TO_ME and context.user_id is not None:
            assigned_to = context.user_id
        elif state.assignment_filter is AssignmentFilter.UNASSIGNED:
            unassigned_only = True

    request = QueryRequest(
        page=state.page,
        page_size=state.page_size,
        search=state.search or None,
        status=state.status or None,
        project_id=project_id,
        assigned_to=assigned_to,
        unassigned_only=unassigned_only,
    )

    if overrides:
        unknown = set(overrides) - _REQUEST_FIELDS
        if unknown:
            raise UnknownOverrideError(f"Unknown request fields: {', '.join(sorted(unknown))}")
        request = replace(request, **dict(overrides))
    return request
