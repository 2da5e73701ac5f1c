"""
REST client for the orders backend.

OrderService supplies the two collaborators a QueryController needs,
fetch_orders() and assign_order(), on top of a shared httpx.AsyncClient.
Non-success responses are raised as ApiError carrying whichever error
shape the backend used.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import ApiError
from .filters import QueryRequest
from .models import OrderStatus, QueryResult

logger = logging.getLogger(__name__)

ORDERS_ENDPOINT = "/api/orders"
ASSIGN_ENDPOINT = f"{ORDERS_ENDPOINT}/assign"
STATUSES_ENDPOINT = f"{ORDERS_ENDPOINT}/statuses"

# The backend encodes "no assignee" as user id 0.
UNASSIGNED_SENTINEL = 0


def build_query_params(request: QueryRequest) -> Dict[str, str]:
    params = {"page": str(request.page), "pageSize": str(request.page_size)}
    if request.project_id:
        params["projectId"] = str(request.project_id)
    if request.unassigned_only:
        params["assignedTo"] = str(UNASSIGNED_SENTINEL)
    elif request.assigned_to:
        params["assignedTo"] = str(request.assigned_to)
    if request.search:
        params["search"] = request.search
    if request.status:
        params["status"] = request.status
    if request.priority is not None:
        params["priority"] = str(request.priority)
    return params


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class OrderService:
    """
    Thin async wrapper over the orders endpoints.

    Attributes:
        base_url: Root URL of the backend API
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = dict(headers or {})
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, headers=self._headers)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_orders(self, request: QueryRequest) -> QueryResult:
        """
        Fetch one page of orders.

        Returns:
            The requested page; a 404 is treated as an empty page

        Raises:
            ApiError: On any other non-success response
            httpx.HTTPError: On transport failures and timeouts
        """
        response = await self._get_client().get(ORDERS_ENDPOINT, params=build_query_params(request))
        if response.status_code == 404:
            return QueryResult(current_page=request.page, page_size=request.page_size)
        self._raise_for_status(response)
        return QueryResult.model_validate(response.json())

    async def assign_order(self, order_id: int, user_id: int) -> None:
        response = await self._get_client().post(ASSIGN_ENDPOINT, json={"orderId": order_id, "userId": user_id})
        self._raise_for_status(response)

    async def get_order_statuses(self) -> List[OrderStatus]:
        response = await self._get_client().get(STATUSES_ENDPOINT)
        if response.status_code == 404:
            logger.warning("Order statuses endpoint not available; returning no statuses")
            return []
        self._raise_for_status(response)
        return [OrderStatus.model_validate(item) for item in response.json()]

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        error = ApiError.from_response(response.status_code, _decode_body(response), response.reason_phrase)
        logger.warning(f"{response.request.method} {response.request.url.path} failed with {response.status_code}: {error}")
        raise error
