"""
Submission API schemas (request models).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .schema import MAX_QUANTITY, QUANTITY_FIELDS


class SubmissionCreate(BaseModel):
    # The form posts camelCase keys; snake_case is accepted too.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    distributor_name: str
    end_user: str = ""
    install_date: str
    needed_by_date: str
    rsm: str
    acknowledgment: bool = False

    nexus_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    sensor_power_unit_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    type1_sensor_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    type2_sensor_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    shelf_mount_kit_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    rack_mount_kit_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    wifi_repeater_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    c1_harness_quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)

    invoice_number: str | None = None
    additional_notes: str | None = None

    @field_validator(*QUANTITY_FIELDS, mode="before")
    @classmethod
    def _blank_quantity_is_zero(cls, value: Any) -> Any:
        # Empty number inputs arrive as "" or null.
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        return value

    @field_validator("end_user", mode="before")
    @classmethod
    def _null_end_user_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value


class StatusUpdateRequest(BaseModel):
    # Any type passes through; the service checks it against the status set.
    status: Any = None
