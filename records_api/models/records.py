"""The record types served by the API.

Each ``ResourceDefinition`` binds a schema to its collection and declares the
few bits that differ per type: recognized search parameters and fixed-field
transitions such as appointment cancellation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from records_api.models.fields import FieldSpec, RecordSchema


@dataclass(frozen=True)
class SearchParam:
    """A query parameter recognized by ``search``.

    ``mode`` is ``"exact"`` or ``"contains"``. A parameter spanning several
    fields matches when any of them does.
    """

    name: str
    fields: tuple[str, ...]
    mode: str = "exact"


@dataclass(frozen=True)
class ResourceDefinition:
    path: str
    collection_name: str
    schema: RecordSchema
    search_params: tuple[SearchParam, ...] = ()
    transitions: dict[str, dict] = field(default_factory=dict)
    tag: str = ""


PATIENT = RecordSchema(
    "Patient",
    (
        FieldSpec("name", min_length=2),
        FieldSpec("dob", "date"),
        FieldSpec("gender", choices=("M", "F", "O"), default="O"),
    ),
)

PROVIDER = RecordSchema(
    "Provider",
    (
        FieldSpec("name", min_length=2),
        FieldSpec("specialty", min_length=2),
        FieldSpec("active", "bool", default=True),
    ),
)

APPOINTMENT = RecordSchema(
    "Appointment",
    (
        FieldSpec("patientId", "ref"),
        FieldSpec("providerId", "ref"),
        FieldSpec("start", "datetime"),
        FieldSpec("end", "datetime"),
        FieldSpec("status", choices=("scheduled", "completed", "cancelled"), default="scheduled"),
    ),
)

ENCOUNTER = RecordSchema(
    "Encounter",
    (
        FieldSpec("patientId", "ref"),
        FieldSpec("providerId", "ref"),
        FieldSpec("date", "datetime"),
        FieldSpec("notes", default=""),
    ),
)

PRESCRIPTION = RecordSchema(
    "Prescription",
    (
        FieldSpec("patientId", "ref"),
        FieldSpec("providerId", "ref"),
        FieldSpec("medication"),
        FieldSpec("dosage"),
        FieldSpec("startDate", "date"),
        FieldSpec("endDate", "date"),
        FieldSpec("status", choices=("active", "completed", "cancelled"), default="active"),
    ),
)

LAB = RecordSchema(
    "Lab",
    (
        FieldSpec("patientId", "ref"),
        FieldSpec("testName"),
        FieldSpec("result"),
        FieldSpec("date", "date"),
    ),
)

VITALS = RecordSchema(
    "Vitals",
    (
        FieldSpec("patientId", "ref"),
        FieldSpec("date", "date"),
        FieldSpec("heartRate", "int", gt=0),
        FieldSpec("bloodPressure"),
        FieldSpec("temperature", "number"),
    ),
)

INVENTORY_ITEM = RecordSchema(
    "InventoryItem",
    (
        FieldSpec("name"),
        FieldSpec("quantity", "int", ge=0),
        FieldSpec("reorderLevel", "int", ge=0, default=0),
    ),
)

BILLING = RecordSchema(
    "Billing",
    (
        FieldSpec("patientId", "ref"),
        FieldSpec("amount", "number", gt=0),
        FieldSpec("status", choices=("unpaid", "paid", "pending"), default="unpaid"),
        FieldSpec("dueDate", "date"),
    ),
)

_BY_PATIENT = SearchParam("patientId", ("patientId",))
_BY_PROVIDER = SearchParam("providerId", ("providerId",))

RESOURCES: tuple[ResourceDefinition, ...] = (
    ResourceDefinition(
        "patients", "patients", PATIENT,
        search_params=(SearchParam("term", ("name",), "contains"),),
        tag="Patients",
    ),
    ResourceDefinition(
        "providers", "providers", PROVIDER,
        search_params=(SearchParam("term", ("name", "specialty"), "contains"),),
        tag="Providers",
    ),
    ResourceDefinition(
        "appointments", "appointments", APPOINTMENT,
        search_params=(_BY_PATIENT, _BY_PROVIDER),
        transitions={"cancel": {"status": "cancelled"}},
        tag="Appointments",
    ),
    ResourceDefinition(
        "encounters", "encounters", ENCOUNTER,
        search_params=(_BY_PATIENT, _BY_PROVIDER),
        tag="Encounters",
    ),
    ResourceDefinition(
        "prescriptions", "prescriptions", PRESCRIPTION,
        search_params=(_BY_PATIENT, _BY_PROVIDER),
        tag="Prescriptions",
    ),
    ResourceDefinition(
        "labs", "labs", LAB,
        search_params=(_BY_PATIENT, SearchParam("testName", ("testName",), "contains")),
        tag="Labs",
    ),
    ResourceDefinition(
        "vitals", "vitals", VITALS,
        search_params=(_BY_PATIENT,),
        tag="Vitals",
    ),
    ResourceDefinition(
        "inventory", "inventory_items", INVENTORY_ITEM,
        search_params=(SearchParam("name", ("name",), "contains"),),
        tag="Inventory",
    ),
    ResourceDefinition(
        "billing", "billing", BILLING,
        search_params=(_BY_PATIENT, SearchParam("status", ("status",))),
        tag="Billing",
    ),
)
