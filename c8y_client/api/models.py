"""Typed request and response bodies for the supported platform resources.

Server-assigned properties (``id``, ``self``, ``creationTime``...) are kept
on the models so a value read from the API can be sent back unchanged; the
request converters strip them per operation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..utils.payload_encoder import json_field


class AlarmSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    WARNING = "WARNING"


class AlarmStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    CLEARED = "CLEARED"


class OperationStatus(str, Enum):
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"
    EXECUTING = "EXECUTING"
    PENDING = "PENDING"


@dataclass
class SourceReference:
    """Reference to the managed object an alarm, event or measurement belongs to."""

    id: str | None = None
    name: str | None = None
    self_link: str | None = json_field("self")


@dataclass
class Alarm:
    count: int | None = None
    creation_time: str | None = None
    first_occurrence_time: str | None = None
    id: str | None = None
    last_updated: str | None = None
    self_link: str | None = json_field("self")
    severity: AlarmSeverity | None = None
    source: SourceReference | None = None
    status: AlarmStatus | None = None
    text: str | None = None
    time: str | None = None
    type: str | None = None
    custom_fragments: dict[str, Any] = field(default_factory=dict)


@dataclass
class Event:
    creation_time: str | None = None
    last_updated: str | None = None
    id: str | None = None
    self_link: str | None = json_field("self")
    source: SourceReference | None = None
    text: str | None = None
    time: str | None = None
    type: str | None = None
    custom_fragments: dict[str, Any] = field(default_factory=dict)


@dataclass
class Measurement:
    """A measurement; value fragments such as ``c8y_Temperature`` are custom fragments."""

    id: str | None = None
    self_link: str | None = json_field("self")
    source: SourceReference | None = None
    time: str | None = None
    type: str | None = None
    custom_fragments: dict[str, Any] = field(default_factory=dict)


@dataclass
class PageStatistics:
    current_page: int | None = None
    page_size: int | None = None
    total_elements: int | None = None
    total_pages: int | None = None


@dataclass
class MeasurementCollection:
    """Bulk measurement body; paging links are assigned by the server."""

    measurements: list[Measurement] | None = None
    next: str | None = None
    prev: str | None = None
    self_link: str | None = json_field("self")
    statistics: PageStatistics | None = None


@dataclass
class ObjectReferences:
    """Child or parent references of a managed object."""

    references: list[dict[str, Any]] | None = None
    self_link: str | None = json_field("self")


@dataclass
class ManagedObject:
    creation_time: str | None = None
    id: str | None = None
    last_updated: str | None = None
    name: str | None = None
    owner: str | None = None
    self_link: str | None = json_field("self")
    type: str | None = None
    child_additions: ObjectReferences | None = None
    child_assets: ObjectReferences | None = None
    child_devices: ObjectReferences | None = None
    addition_parents: ObjectReferences | None = None
    asset_parents: ObjectReferences | None = None
    device_parents: ObjectReferences | None = None
    c8y_is_device: dict[str, Any] | None = json_field("c8y_IsDevice")
    c8y_device_types: list[str] | None = json_field("c8y_DeviceTypes")
    c8y_supported_operations: list[str] | None = json_field("c8y_SupportedOperations")
    custom_fragments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExternalIds:
    external_ids: list[dict[str, Any]] | None = None
    self_link: str | None = json_field("self")


@dataclass
class Operation:
    bulk_operation_id: str | None = None
    creation_time: str | None = None
    device_id: str | None = None
    device_external_ids: ExternalIds | None = json_field("deviceExternalIDs")
    failure_reason: str | None = None
    id: str | None = None
    self_link: str | None = json_field("self")
    status: OperationStatus | None = None
    custom_fragments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExternalId:
    external_id: str | None = None
    type: str | None = None
    managed_object: SourceReference | None = None
    self_link: str | None = json_field("self")


@dataclass
class ApiError:
    """Error body returned with non-2xx responses."""

    error: str | None = None
    message: str | None = None
    info: str | None = None
