"""
Pydantic Schemas - Data Validation Models

Defines the schemas validated along the pipeline:
- Billing API event pages
- Event records and their nested payload
- Field type declarations from the side-input file

Usage:
    from utils.schemas import EventPage

    page = EventPage.model_validate(response.json())
    payloads = [event.data.object for event in page.data]
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FieldKind = Literal["STRING", "INTEGER", "FLOAT", "BOOLEAN", "JSON"]


class EventData(BaseModel):
    """Envelope around the object an event is about."""

    model_config = ConfigDict(extra="allow")

    object: dict[str, Any] = Field(..., description="Event payload")


class EventRecord(BaseModel):
    """Single event as returned by the billing API.

    Only `id` and `data.object` are required; every other attribute is kept.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Event ID, used as pagination cursor")
    data: EventData = Field(..., description="Event data envelope")


class EventPage(BaseModel):
    """One page of the events list endpoint."""

    model_config = ConfigDict(extra="allow")

    data: list[EventRecord] = Field(default_factory=list, description="Events on this page")
    has_more: bool = Field(..., description="Whether another page follows")


class FieldSpec(BaseModel):
    """Declared type of one flattened field."""

    type: FieldKind = Field(..., description="Primitive kind of the field")
