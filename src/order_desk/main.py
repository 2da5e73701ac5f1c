from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .configuration import build_client_settings, build_field_mapping, make_runtime_config
from .error_normalizer import ErrorNormalizer
from .errors import ApiError, IdentityUnavailableError
from .filters import ViewContext
from .models import AssignmentFilter, ClientSettings, Notification, OrderStatus, ViewKind, ViewSnapshot, ViewSummary
from .notifications import NotificationCenter
from .order_service import OrderService
from .query_controller import QueryController
from .view_manager import ViewManager

config = make_runtime_config()

notification_center = NotificationCenter(display_seconds=config.notifications.display_seconds)
error_normalizer = ErrorNormalizer(
    notification_sink=notification_center.push,
    cooldown=config.notifications.toast_cooldown_seconds,
    field_mapping=build_field_mapping(config=config),
)
order_service = OrderService(config.api.base_url, timeout=config.api.timeout_seconds)
view_manager = ViewManager(
    order_service.fetch_orders,
    order_service.assign_order,
    error_normalizer,
    page_size=config.orders.page_size,
    assigned_page_size=config.orders.assigned_page_size,
    search_delay=config.search.debounce_seconds,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    view_manager.close_all()
    await order_service.aclose()


app = FastAPI(title="Order Desk API", version="0.1.0", lifespan=lifespan)

allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CreateViewRequest(BaseModel):
    kind: ViewKind = ViewKind.ORDERS
    identity_loaded: bool = True
    user_id: Optional[int] = None
    project_id: Optional[int] = None


class ContextUpdate(BaseModel):
    identity_loaded: Optional[bool] = None
    user_id: Optional[int] = None
    project_id: Optional[int] = None


class FilterUpdate(BaseModel):
    search: Optional[str] = None
    immediate_search: bool = False
    status: Optional[str] = None
    assignment_filter: Optional[AssignmentFilter] = None
    page: Optional[int] = None


def get_view_manager() -> ViewManager:
    return view_manager


def get_order_service() -> OrderService:
    return order_service


def get_notification_center() -> NotificationCenter:
    return notification_center


def _require_view(view_id: str, manager: ViewManager) -> QueryController:
    controller = manager.get_view(view_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="View not found")
    return controller


async def _respond(controller: QueryController, wait: bool) -> ViewSnapshot:
    if wait:
        await controller.wait_idle()
    return controller.snapshot()


@app.get("/healthz")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/config/defaults", response_model=ClientSettings)
def get_config_defaults() -> ClientSettings:
    return build_client_settings(config)


@app.get("/views", response_model=List[ViewSummary])
async def list_views(manager: ViewManager = Depends(get_view_manager)) -> List[ViewSummary]:
    return manager.list_views()


@app.post("/views", response_model=ViewSummary)
async def create_view(payload: CreateViewRequest, manager: ViewManager = Depends(get_view_manager)) -> ViewSummary:
    context = ViewContext(
        identity_loaded=payload.identity_loaded,
        user_id=payload.user_id,
        project_id=payload.project_id,
    )
    return manager.create_view(payload.kind, context)


@app.get("/views/{view_id}", response_model=ViewSnapshot, response_model_by_alias=False)
async def get_view(view_id: str, wait: bool = False, manager: ViewManager = Depends(get_view_manager)) -> ViewSnapshot:
    return await _respond(_require_view(view_id, manager), wait)


@app.delete("/views/{view_id}")
async def close_view(view_id: str, manager: ViewManager = Depends(get_view_manager)) -> Dict[str, str]:
    if not manager.close_view(view_id):
        raise HTTPException(status_code=404, detail="View not found")
    return {"status": "closed"}


@app.patch("/views/{view_id}/context", response_model=ViewSnapshot, response_model_by_alias=False)
async def update_context(
    view_id: str,
    payload: ContextUpdate,
    wait: bool = False,
    manager: ViewManager = Depends(get_view_manager),
) -> ViewSnapshot:
    controller = _require_view(view_id, manager)
    controller.update_context(**payload.model_dump(exclude_none=True))
    return await _respond(controller, wait)


@app.put("/views/{view_id}/filters", response_model=ViewSnapshot, response_model_by_alias=False)
async def update_filters(
    view_id: str,
    payload: FilterUpdate,
    wait: bool = False,
    manager: ViewManager = Depends(get_view_manager),
) -> ViewSnapshot:
    controller = _require_view(view_id, manager)
    if payload.status is not None:
        controller.set_status(payload.status)
    if payload.assignment_filter is not None:
        controller.set_assignment_filter(payload.assignment_filter)
    if payload.search is not None:
        controller.set_search(payload.search, immediate=payload.immediate_search)
    if payload.page is not None:
        controller.set_page(payload.page)
    return await _respond(controller, wait)


@app.post("/views/{view_id}/refetch", response_model=ViewSnapshot, response_model_by_alias=False)
async def refetch_view(view_id: str, manager: ViewManager = Depends(get_view_manager)) -> ViewSnapshot:
    controller = _require_view(view_id, manager)
    await controller.refetch()
    return controller.snapshot()


@app.post("/views/{view_id}/orders/{order_id}/assign", response_model=ViewSnapshot, response_model_by_alias=False)
async def assign_order(view_id: str, order_id: int, manager: ViewManager = Depends(get_view_manager)) -> ViewSnapshot:
    controller = _require_view(view_id, manager)
    try:
        await controller.assign(order_id)
    except IdentityUnavailableError as exc:  # noqa: BLE001
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ApiError as exc:  # noqa: BLE001
        status_code = exc.status if exc.status and 400 <= exc.status < 500 else 502
        raise HTTPException(status_code=status_code, detail=controller.error) from exc
    except httpx.HTTPError as exc:  # noqa: BLE001
        raise HTTPException(status_code=502, detail=controller.error) from exc
    return controller.snapshot()


@app.delete("/views/{view_id}/error", response_model=ViewSnapshot, response_model_by_alias=False)
async def clear_view_error(view_id: str, manager: ViewManager = Depends(get_view_manager)) -> ViewSnapshot:
    controller = _require_view(view_id, manager)
    controller.clear_error()
    return controller.snapshot()


@app.get("/notifications", response_model=List[Notification])
async def list_notifications(center: NotificationCenter = Depends(get_notification_center)) -> List[Notification]:
    return center.list()


@app.delete("/notifications")
async def clear_notifications(center: NotificationCenter = Depends(get_notification_center)) -> Dict[str, str]:
    center.clear()
    return {"status": "cleared"}


@app.get("/order-statuses", response_model=List[OrderStatus], response_model_by_alias=False)
async def list_order_statuses(service: OrderService = Depends(get_order_service)) -> List[OrderStatus]:
    try:
        return await service.get_order_statuses()
    except ApiError as exc:  # noqa: BLE001
        raise HTTPException(status_code=502, detail=str(exc)) from exc
