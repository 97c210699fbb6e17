"""Record schemas described as data.

A ``RecordSchema`` is an ordered tuple of ``FieldSpec`` descriptors. The
pydantic models used for create and update payloads are generated from the
descriptors, so every record type shares one set of type rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from functools import cached_property
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    StringConstraints,
    create_model,
)

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
DATETIME_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z?$"

KINDS = ("string", "ref", "int", "number", "bool", "date", "datetime")

_MISSING: Any = object()


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{value!r} is not a valid calendar date") from None


def parse_datetime(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{value!r} is not a valid date-time") from None
    # No offset means UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


DateString = Annotated[
    StrictStr, StringConstraints(pattern=DATE_PATTERN), AfterValidator(parse_date)
]
DateTimeString = Annotated[
    StrictStr, StringConstraints(pattern=DATETIME_PATTERN), AfterValidator(parse_datetime)
]

_BASE_TYPES: dict[str, Any] = {
    "string": StrictStr,
    "ref": StrictStr,
    "int": StrictInt,
    "number": Annotated[StrictFloat, Field(allow_inf_nan=False)],
    "bool": StrictBool,
    "date": DateString,
    "datetime": DateTimeString,
}


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str = "string"
    default: Any = _MISSING
    choices: tuple[str, ...] = ()
    min_length: int | None = None
    gt: float | None = None
    ge: float | None = None

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"Unknown field kind {self.kind!r} for {self.name}")

    @property
    def required(self) -> bool:
        return self.default is _MISSING

    @property
    def annotation(self) -> Any:
        if self.choices:
            return Literal[self.choices]
        return _BASE_TYPES[self.kind]

    def constraints(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("min_length", self.min_length),
                ("gt", self.gt),
                ("ge", self.ge),
            )
            if value is not None
        }


@dataclass(frozen=True)
class RecordSchema:
    name: str
    fields: tuple[FieldSpec, ...]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def reference_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.kind == "ref")

    @cached_property
    def create_model(self) -> type[BaseModel]:
        definitions = {}
        for spec in self.fields:
            if spec.required:
                info = Field(**spec.constraints())
            else:
                info = Field(default=spec.default, **spec.constraints())
            definitions[spec.name] = (spec.annotation, info)
        return create_model(
            f"{self.name}Create",
            __config__=ConfigDict(extra="ignore"),
            **definitions,
        )

    @cached_property
    def update_model(self) -> type[BaseModel]:
        # The None default is never validated, so an omitted field stays
        # omitted while an explicit null is still a type error.
        definitions = {
            spec.name: (spec.annotation, Field(default=None, **spec.constraints()))
            for spec in self.fields
        }
        return create_model(
            f"{self.name}Update",
            __config__=ConfigDict(extra="ignore"),
            **definitions,
        )

    def revive(self, document: dict) -> dict:
        """Turn stored ISO strings back into ``date``/``datetime`` values."""
        revived = dict(document)
        for spec in self.fields:
            value = revived.get(spec.name)
            if not isinstance(value, str):
                continue
            if spec.kind == "date":
                revived[spec.name] = date.fromisoformat(value)
            elif spec.kind == "datetime":
                revived[spec.name] = datetime.fromisoformat(value)
        return revived
