"""
Tests for the orders REST client, using httpx's mock transport.
"""

import json

import httpx
import pytest

from order_desk.errors import ApiError
from order_desk.filters import QueryRequest
from order_desk.order_service import OrderService, build_query_params


def make_service(handler):
    client = httpx.AsyncClient(base_url="http://orders.test", transport=httpx.MockTransport(handler))
    return OrderService("http://orders.test", client=client)


class TestQueryParams:
    def test_minimal_request(self):
        assert build_query_params(QueryRequest(page=1, page_size=10)) == {"page": "1", "pageSize": "10"}

    def test_full_request(self):
        request = QueryRequest(page=2, page_size=25, search="inv", status="Pending", project_id=3, assigned_to=7, priority=0)
        assert build_query_params(request) == {
            "page": "2",
            "pageSize": "25",
            "projectId": "3",
            "assignedTo": "7",
            "search": "inv",
            "status": "Pending",
            "priority": "0",
        }

    def test_unassigned_uses_backend_sentinel(self):
        params = build_query_params(QueryRequest(page=1, page_size=10, unassigned_only=True))
        assert params["assignedTo"] == "0"


class TestFetchOrders:
    @pytest.mark.asyncio
    async def test_parses_page(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(
                200,
                json={
                    "orders": [{"id": 1, "orderIdentifier": "ORD-1", "status": "Pending", "assignedTo": 7}],
                    "totalCount": 1,
                    "pageSize": 10,
                    "currentPage": 1,
                    "totalPages": 1,
                    "hasNextPage": False,
                    "hasPreviousPage": False,
                },
            )

        service = make_service(handler)
        result = await service.fetch_orders(QueryRequest(page=1, page_size=10, project_id=3))
        await service.aclose()

        assert seen["url"].path == "/api/orders"
        assert seen["url"].params["projectId"] == "3"
        assert result.total_count == 1
        assert result.items[0].order_identifier == "ORD-1"
        assert result.items[0].assigned_to == 7

    @pytest.mark.asyncio
    async def test_not_found_is_empty_page(self):
        service = make_service(lambda request: httpx.Response(404))
        result = await service.fetch_orders(QueryRequest(page=2, page_size=10))

        assert result.items == []
        assert result.total_pages == 0
        assert result.current_page == 2

    @pytest.mark.asyncio
    async def test_validation_body_becomes_api_error(self):
        body = {"validationErrors": [{"key": "Status", "errorMessage": "Unknown status", "severity": 0}]}
        service = make_service(lambda request: httpx.Response(400, json=body))

        with pytest.raises(ApiError) as excinfo:
            await service.fetch_orders(QueryRequest(page=1, page_size=10))

        assert excinfo.value.status == 400
        assert excinfo.value.is_validation_error()
        assert excinfo.value.validation_errors[0]["key"] == "Status"

    @pytest.mark.asyncio
    async def test_plain_text_error(self):
        service = make_service(lambda request: httpx.Response(500, text="database offline"))
        with pytest.raises(ApiError, match="database offline"):
            await service.fetch_orders(QueryRequest(page=1, page_size=10))


class TestAssignOrder:
    @pytest.mark.asyncio
    async def test_posts_assignment(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(204)

        await make_service(handler).assign_order(11, 7)
        assert seen == {"path": "/api/orders/assign", "body": {"orderId": 11, "userId": 7}}

    @pytest.mark.asyncio
    async def test_error_message_surfaces(self):
        service = make_service(lambda request: httpx.Response(409, json={"message": "Order already assigned"}))
        with pytest.raises(ApiError) as excinfo:
            await service.assign_order(11, 7)
        assert excinfo.value.message == "Order already assigned"
        assert not excinfo.value.is_validation_error()


class TestOrderStatuses:
    @pytest.mark.asyncio
    async def test_lists_statuses(self):
        body = [{"id": "Pending", "name": "Pending", "isActive": True}]
        statuses = await make_service(lambda request: httpx.Response(200, json=body)).get_order_statuses()
        assert [s.name for s in statuses] == ["Pending"]

    @pytest.mark.asyncio
    async def test_missing_endpoint_returns_empty(self):
        assert await make_service(lambda request: httpx.Response(404)).get_order_statuses() == []
