from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AssignmentFilter(str, Enum):
    ALL = "all"
    UNASSIGNED = "unassigned"
    ASSIGNED_TO_ME = "assignedToMe"


class ViewKind(str, Enum):
    ORDERS = "orders"
    ASSIGNED = "assigned"


class ControllerStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


class Severity(IntEnum):
    ERROR = 0
    WARNING = 1


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ApiModel(BaseModel):
    """Base for payloads exchanged with the orders backend (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Order(ApiModel):
    id: int
    order_identifier: str = ""
    batch_id: Optional[int] = None
    batch_file_name: Optional[str] = None
    project_id: Optional[int] = None
    project_name: Optional[str] = None
    status: str = ""
    priority: int = 0
    assigned_to: Optional[int] = None
    assigned_user_name: Optional[str] = None
    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    has_validation_errors: bool = False
    document_count: int = 0
    field_count: int = 0
    verified_field_count: int = 0
    completion_percentage: float = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QueryResult(ApiModel):
    # The backend names the page contents "orders".
    items: List[Order] = Field(default_factory=list, alias="orders")
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0
    page_size: int = 10
    has_next_page: bool = False
    has_previous_page: bool = False


class OrderStatus(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True


class ApiValidationError(ApiModel):
    key: str
    error_message: str
    severity: Severity = Severity.ERROR


class FieldError(BaseModel):
    type: str
    message: str


class FormValidationError(BaseModel):
    field: str
    message: str
    type: str = "server"
    severity: str = "error"
    # Backend key before field mapping
    key: str = ""


class Notification(BaseModel):
    id: str
    kind: NotificationKind
    message: str
    created_at: float


class ViewSnapshot(BaseModel):
    items: List[Order]
    total_count: int
    current_page: int
    total_pages: int
    page_size: int
    is_loading: bool
    is_initial_loading: bool
    error: Optional[str] = None
    status: ControllerStatus
    search: str
    status_filter: str
    assignment_filter: AssignmentFilter
    page: int


class ViewSummary(BaseModel):
    id: str
    kind: ViewKind
    created_at: datetime
    status: ControllerStatus
    user_id: Optional[int] = None
    project_id: Optional[int] = None


class ClientSettings(BaseModel):
    page_size: int
    assigned_page_size: int
    search_debounce_seconds: float
    toast_cooldown_seconds: float
    assignment_filters: List[AssignmentFilter]
    field_mapping: Dict[str, str]
    notes: Dict[str, Any]
