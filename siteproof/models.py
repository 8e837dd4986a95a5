"""SiteProof Pydantic models for request payload validation.

Payloads accept both camelCase (browser forms / JSON) and snake_case keys.
Blank strings are treated as absent so optional fields fall back to defaults
and required fields report as missing. Update payloads list ``clearable``
fields, where a blank or null is kept as None so the stored value is cleared.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar
from uuid import UUID

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class LotStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"


class AssignmentStatus(str, Enum):
    """Lifecycle of one ITP instance (lot <-> template assignment)."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    APPROVED = "approved"


class ITPItemType(str, Enum):
    PASS_FAIL = "pass_fail"
    NUMERIC = "numeric"
    TEXT = "text"
    PHOTO_REQUIRED = "photo_required"


class ConformanceStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    NA = "na"
    PENDING = "pending"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    PENDING = "pending"


def normalise_choice(value: Any) -> Any:
    # "PASS", "N/A", "In Progress" -> "pass", "na", "in_progress"
    if isinstance(value, str):
        return value.strip().lower().replace("/", "").replace(" ", "_").replace("-", "_")
    return value


Choice = BeforeValidator(normalise_choice)


class Payload(BaseModel):
    """Base for action payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        use_enum_values=True,
    )

    # field name -> message used when the field is missing or blank
    required_messages: ClassVar[dict[str, str]] = {}

    # fields where an explicit blank or null means "clear the stored value"
    clearable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        clear_keys = cls.clearable | {to_camel(name) for name in cls.clearable}
        cleaned = {}
        for key, value in data.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                if key in clear_keys:
                    cleaned[key] = None
                continue
            cleaned[key] = value
        return cleaned


class SignupRequest(Payload):
    required_messages = {
        "email": "Email and password are required",
        "password": "Email and password are required",
    }

    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None


class LoginRequest(Payload):
    required_messages = {
        "email": "Email and password are required",
        "password": "Email and password are required",
    }

    email: str
    password: str


class ProjectCreate(Payload):
    required_messages = {"name": "Project name is required"}

    name: str = Field(max_length=100)
    project_number: str | None = None
    description: str | None = Field(default=None, max_length=500)
    location: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def check_dates(self) -> ProjectCreate:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class ProjectUpdate(Payload):
    clearable = frozenset({"project_number", "description", "location", "start_date", "end_date"})

    name: str | None = Field(default=None, max_length=100)
    project_number: str | None = None
    description: str | None = Field(default=None, max_length=500)
    location: str | None = None
    status: Annotated[ProjectStatus | None, Choice] = None
    start_date: date | None = None
    end_date: date | None = None


class LotCreate(Payload):
    required_messages = {
        "project_id": "Project ID and lot number are required",
        "lot_number": "Project ID and lot number are required",
    }

    project_id: UUID
    lot_number: str = Field(max_length=50)
    description: str | None = Field(default=None, max_length=500)
    location_description: str | None = None
    itp_template_id: UUID | None = None


class ITPItemCreate(Payload):
    required_messages = {"description": "Item description is required"}

    description: str
    item_number: str | None = None
    specification_reference: str | None = None
    inspection_method: str | None = None
    acceptance_criteria: str | None = None
    item_type: Annotated[ITPItemType, Choice] = "pass_fail"
    is_mandatory: bool = True
    order_index: int | None = None


class ITPTemplateCreate(Payload):
    required_messages = {"name": "Template name is required"}

    name: str
    description: str | None = None
    category: str | None = None
    version: str = "1.0"
    is_active: bool = True
    items: list[ITPItemCreate] = Field(default_factory=list)


class CreateFromTemplate(Payload):
    required_messages = {
        "template_id": "Template ID is required",
        "lot_id": "Lot ID is required to create an ITP",
    }

    template_id: UUID = Field(validation_alias=AliasChoices("template_id", "templateId", "itpTemplateId"))
    lot_id: UUID
    project_id: UUID | None = None
    name: str | None = None


class ITPUpdate(Payload):
    instance_name: str | None = Field(
        default=None, validation_alias=AliasChoices("instance_name", "instanceName", "name")
    )
    status: Annotated[AssignmentStatus | None, Choice] = None


class ConformanceSave(Payload):
    required_messages = {
        "lot_id": "Lot ID and ITP item ID are required",
        "itp_item_id": "Lot ID and ITP item ID are required",
    }

    lot_id: UUID
    itp_item_id: UUID
    itp_template_id: UUID | None = None
    status: Annotated[ConformanceStatus, Choice] = Field(
        default="pending",
        validation_alias=AliasChoices("status", "result_pass_fail", "resultPassFail"),
    )
    result_numeric: Decimal | None = None
    result_text: str | None = None
    notes: str | None = Field(default=None, validation_alias=AliasChoices("notes", "comments"))
    corrective_action: str | None = None
    photo_url: str | None = None


class ComplianceCheckCreate(Payload):
    required_messages = {
        "lot_id": "Lot ID and check type are required",
        "check_type": "Lot ID and check type are required",
    }

    lot_id: UUID
    check_type: str
    status: Annotated[ComplianceStatus, Choice] = "pending"
    notes: str | None = None
    photo_url: str | None = None


class LabourDocketCreate(Payload):
    required_messages = {
        "lot_id": "Lot, work date, worker name and hours are required",
        "work_date": "Lot, work date, worker name and hours are required",
        "worker_name": "Lot, work date, worker name and hours are required",
        "hours_worked": "Lot, work date, worker name and hours are required",
    }

    lot_id: UUID
    work_date: date
    worker_name: str
    trade: str | None = None
    hours_worked: Decimal = Field(ge=0)
    hourly_rate: Decimal | None = Field(default=None, ge=0)
    overtime_hours: Decimal = Field(default=Decimal("0"), ge=0)
    overtime_rate: Decimal | None = Field(default=None, ge=0)
    task_description: str | None = None


class MaterialsDocketCreate(Payload):
    required_messages = {
        "lot_id": "Lot, delivery date, material type and quantity are required",
        "delivery_date": "Lot, delivery date, material type and quantity are required",
        "material_type": "Lot, delivery date, material type and quantity are required",
        "quantity": "Lot, delivery date, material type and quantity are required",
    }

    lot_id: UUID
    delivery_date: date
    material_type: str
    supplier: str | None = None
    quantity: Decimal = Field(gt=0)
    unit_measure: str | None = None
    unit_cost: Decimal | None = Field(default=None, ge=0)
    total_cost: Decimal | None = Field(default=None, ge=0)
    delivery_docket: str | None = None
    quality_notes: str | None = None
    received_by: str | None = None
