"""Declarative endpoint metadata for the supported platform operations.

Each operation is a method, a path template, content negotiation headers,
the allowed query parameters and the request body model. The read-only
properties to strip from the body are looked up by operation name in
:class:`~c8y_client.utils.readonly_properties.ReadOnlyProperties`.

Only a representative subset of the REST API is declared here. Integrators
can declare further :class:`Endpoint` instances and serialize their bodies
with ``CumulocityClient.converter_for``. One with ``bulk=True`` sends a JSON
array whose elements are each stripped by the operation's rules. None of
the endpoints below sends a list body.
"""

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from ..utils.errors import ConfigurationError
from .models import (
    Alarm,
    Event,
    ExternalId,
    ManagedObject,
    Measurement,
    MeasurementCollection,
    Operation,
)

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")

MEDIA_TYPE_PREFIX = "application/vnd.com.nsn.cumulocity."
ERROR_MEDIA_TYPE = f"{MEDIA_TYPE_PREFIX}error+json"
JSON_MEDIA_TYPE = "application/json"

PROCESSING_MODE_HEADER = "X-Cumulocity-Processing-Mode"
PROCESSING_MODES = ("PERSISTENT", "TRANSIENT", "QUIESCENT", "CEP")


def media_type(resource: str) -> str:
    """Vendor media type of a resource, e.g. ``alarm`` or ``alarmcollection``."""
    return f"{MEDIA_TYPE_PREFIX}{resource}+json"


def accept(*resources: str) -> str:
    """Accept header listing the error type first, as the platform expects."""
    return ", ".join([ERROR_MEDIA_TYPE, *(media_type(r) for r in resources)])


@dataclass(frozen=True)
class Endpoint:
    """One API operation.

    ``bulk`` marks a request body that is a list of models. The read-only
    rules then apply to every element instead of the list itself.
    """

    name: str
    method: str
    path: str
    accept: str = JSON_MEDIA_TYPE
    content_type: str | None = None
    body_model: type | None = None
    response_model: type | None = None
    query: tuple[str, ...] = ()
    bulk: bool = False
    processing_mode: bool = False

    @property
    def placeholders(self) -> list[str]:
        """Names of the path template placeholders."""
        return PLACEHOLDER_PATTERN.findall(self.path)

    @property
    def has_body(self) -> bool:
        return self.content_type is not None

    def format_path(self, **path_params: Any) -> str:
        """Fill the path template, URL-quoting each value.

        Raises:
            ConfigurationError: If a placeholder has no value
        """
        missing = [name for name in self.placeholders if path_params.get(name) is None]
        if missing:
            raise ConfigurationError(
                f"{self.name} requires path parameter(s): {', '.join(missing)}",
            )

        return PLACEHOLDER_PATTERN.sub(
            lambda m: quote(str(path_params[m.group(1)]), safe=""),
            self.path,
        )


_PAGING = ("currentPage", "pageSize", "withTotalElements", "withTotalPages")
_ALARM_FILTERS = (
    "createdFrom",
    "createdTo",
    "dateFrom",
    "dateTo",
    "resolved",
    "severity",
    "source",
    "status",
    "type",
    "withSourceAssets",
    "withSourceDevices",
)
_EVENT_FILTERS = (
    "createdFrom",
    "createdTo",
    "dateFrom",
    "dateTo",
    "fragmentType",
    "source",
    "type",
)
_MANAGED_OBJECT_FILTERS = (
    "childAdditionId",
    "childAssetId",
    "childDeviceId",
    "fragmentType",
    "ids",
    "owner",
    "text",
    "type",
)

_ENDPOINT_LIST = [
    # Alarms
    Endpoint(
        "getAlarms",
        "GET",
        "/alarm/alarms",
        accept=accept("alarmcollection"),
        query=(*_ALARM_FILTERS, "lastUpdatedFrom", "lastUpdatedTo", *_PAGING),
    ),
    Endpoint(
        "updateAlarms",
        "PUT",
        "/alarm/alarms",
        content_type=media_type("alarm"),
        body_model=Alarm,
        query=tuple(f for f in _ALARM_FILTERS if f != "type"),
        processing_mode=True,
    ),
    Endpoint(
        "createAlarm",
        "POST",
        "/alarm/alarms",
        accept=accept("alarm"),
        content_type=media_type("alarm"),
        body_model=Alarm,
        response_model=Alarm,
        processing_mode=True,
    ),
    Endpoint("deleteAlarms", "DELETE", "/alarm/alarms", query=_ALARM_FILTERS, processing_mode=True),
    Endpoint("getAlarm", "GET", "/alarm/alarms/{id}", accept=accept("alarm"), response_model=Alarm),
    Endpoint(
        "updateAlarm",
        "PUT",
        "/alarm/alarms/{id}",
        accept=accept("alarm"),
        content_type=media_type("alarm"),
        body_model=Alarm,
        response_model=Alarm,
        processing_mode=True,
    ),
    Endpoint(
        "getNumberOfAlarms",
        "GET",
        "/alarm/alarms/count",
        accept=f"{ERROR_MEDIA_TYPE}, text/plain, {JSON_MEDIA_TYPE}",
        query=_ALARM_FILTERS,
    ),
    # Events
    Endpoint(
        "getEvents",
        "GET",
        "/event/events",
        accept=accept("eventcollection"),
        query=(*_EVENT_FILTERS, "fragmentValue", "lastUpdatedFrom", "lastUpdatedTo", "revert",
               "withSourceAssets", "withSourceDevices", *_PAGING),
    ),
    Endpoint(
        "createEvent",
        "POST",
        "/event/events",
        accept=accept("event"),
        content_type=media_type("event"),
        body_model=Event,
        response_model=Event,
        processing_mode=True,
    ),
    Endpoint("deleteEvents", "DELETE", "/event/events", query=_EVENT_FILTERS, processing_mode=True),
    Endpoint("getEvent", "GET", "/event/events/{id}", accept=accept("event"), response_model=Event),
    Endpoint(
        "updateEvent",
        "PUT",
        "/event/events/{id}",
        accept=accept("event"),
        content_type=media_type("event"),
        body_model=Event,
        response_model=Event,
        processing_mode=True,
    ),
    Endpoint("deleteEvent", "DELETE", "/event/events/{id}", processing_mode=True),
    # Measurements
    Endpoint(
        "getMeasurements",
        "GET",
        "/measurement/measurements",
        accept=accept("measurementcollection"),
        query=("dateFrom", "dateTo", "revert", "source", "type", "valueFragmentSeries",
               "valueFragmentType", *_PAGING),
    ),
    Endpoint(
        "createMeasurement",
        "POST",
        "/measurement/measurements",
        accept=accept("measurement", "measurementcollection"),
        content_type=media_type("measurement"),
        body_model=Measurement,
        response_model=Measurement,
        processing_mode=True,
    ),
    Endpoint(
        "createMeasurements",
        "POST",
        "/measurement/measurements",
        accept=accept("measurement", "measurementcollection"),
        content_type=media_type("measurementcollection"),
        body_model=MeasurementCollection,
        response_model=MeasurementCollection,
        processing_mode=True,
    ),
    Endpoint(
        "deleteMeasurements",
        "DELETE",
        "/measurement/measurements",
        query=("dateFrom", "dateTo", "fragmentType", "source", "type"),
        processing_mode=True,
    ),
    Endpoint(
        "getMeasurement",
        "GET",
        "/measurement/measurements/{id}",
        accept=accept("measurement"),
        response_model=Measurement,
    ),
    Endpoint("deleteMeasurement", "DELETE", "/measurement/measurements/{id}", processing_mode=True),
    # Inventory
    Endpoint(
        "getManagedObjects",
        "GET",
        "/inventory/managedObjects",
        accept=accept("managedobjectcollection"),
        query=(*_MANAGED_OBJECT_FILTERS, "onlyRoots", "q", "query", "skipChildrenNames",
               "withChildren", "withChildrenCount", "withGroups", "withParents", *_PAGING),
    ),
    Endpoint(
        "createManagedObject",
        "POST",
        "/inventory/managedObjects",
        accept=accept("managedobject"),
        content_type=media_type("managedobject"),
        body_model=ManagedObject,
        response_model=ManagedObject,
        processing_mode=True,
    ),
    Endpoint(
        "getNumberOfManagedObjects",
        "GET",
        "/inventory/managedObjects/count",
        accept=f"{ERROR_MEDIA_TYPE}, text/plain, {JSON_MEDIA_TYPE}",
        query=_MANAGED_OBJECT_FILTERS,
    ),
    Endpoint(
        "getManagedObject",
        "GET",
        "/inventory/managedObjects/{id}",
        accept=accept("managedobject"),
        response_model=ManagedObject,
        query=("skipChildrenNames", "withChildren", "withChildrenCount", "withParents"),
    ),
    Endpoint(
        "updateManagedObject",
        "PUT",
        "/inventory/managedObjects/{id}",
        accept=accept("managedobject"),
        content_type=media_type("managedobject"),
        body_model=ManagedObject,
        response_model=ManagedObject,
        processing_mode=True,
    ),
    Endpoint(
        "deleteManagedObject",
        "DELETE",
        "/inventory/managedObjects/{id}",
        query=("cascade", "forceCascade", "withDeviceUser"),
        processing_mode=True,
    ),
    # Device control
    Endpoint(
        "getOperations",
        "GET",
        "/devicecontrol/operations",
        accept=accept("operationcollection"),
        query=("agentId", "bulkOperationId", "dateFrom", "dateTo", "deviceId", "fragmentType",
               "revert", "status", *_PAGING),
    ),
    Endpoint(
        "createOperation",
        "POST",
        "/devicecontrol/operations",
        accept=accept("operation"),
        content_type=media_type("operation"),
        body_model=Operation,
        response_model=Operation,
        processing_mode=True,
    ),
    Endpoint(
        "getOperation",
        "GET",
        "/devicecontrol/operations/{id}",
        accept=accept("operation"),
        response_model=Operation,
    ),
    Endpoint(
        "updateOperation",
        "PUT",
        "/devicecontrol/operations/{id}",
        accept=accept("operation"),
        content_type=media_type("operation"),
        body_model=Operation,
        response_model=Operation,
        processing_mode=True,
    ),
    # Identity
    Endpoint(
        "getExternalIds",
        "GET",
        "/identity/globalIds/{id}/externalIds",
        accept=accept("externalidcollection"),
    ),
    Endpoint(
        "createExternalId",
        "POST",
        "/identity/globalIds/{id}/externalIds",
        accept=accept("externalid"),
        content_type=media_type("externalid"),
        body_model=ExternalId,
        response_model=ExternalId,
    ),
    Endpoint(
        "getExternalId",
        "GET",
        "/identity/externalIds/{type}/{externalId}",
        accept=accept("externalid"),
        response_model=ExternalId,
    ),
    Endpoint("deleteExternalId", "DELETE", "/identity/externalIds/{type}/{externalId}"),
]

ENDPOINTS: dict[str, Endpoint] = {endpoint.name: endpoint for endpoint in _ENDPOINT_LIST}


def get_endpoint(name: str) -> Endpoint:
    """Look up an endpoint by operation name.

    Raises:
        ConfigurationError: If the operation is not declared
    """
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown operation: {name}") from None


def body_models() -> dict[str, type]:
    """Request body model of every operation that sends one."""
    return {
        name: endpoint.body_model
        for name, endpoint in ENDPOINTS.items()
        if endpoint.body_model is not None
    }
