"""Validation engine for create and update payloads.

Both entry points are pure: they take the raw JSON-decoded payload and a
``RecordSchema`` and either return a normalized dict or raise ``InvalidInput``
carrying every violation found. Pydantic collects all field errors in one
pass, so nothing short-circuits on the first failure.
"""

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ValidationError

from records_api.errors import FieldError, InvalidInput
from records_api.models.fields import RecordSchema

# pydantic error type -> constraint code reported to clients
_CONSTRAINTS = {
    "missing": "required",
    "model_type": "type",
    "model_attributes_type": "type",
    "string_type": "type",
    "int_type": "type",
    "int_from_float": "type",
    "float_type": "type",
    "bool_type": "type",
    "string_too_short": "min_length",
    "string_pattern_mismatch": "pattern",
    "literal_error": "enum",
    "greater_than": "gt",
    "greater_than_equal": "ge",
    "finite_number": "finite",
    "value_error": "date",
    "json_invalid": "json",
}


def to_field_errors(raw_errors: Iterable[dict], skip_prefix: str | None = None) -> list[FieldError]:
    errors = []
    for error in raw_errors:
        loc = list(error.get("loc", ()))
        if skip_prefix and loc and loc[0] == skip_prefix:
            loc = loc[1:]
        # The loc of a JSON syntax error is a byte offset, not a field
        field = "" if error["type"] == "json_invalid" else ".".join(str(part) for part in loc)
        constraint = _CONSTRAINTS.get(error["type"], error["type"])
        errors.append(FieldError(field=field, constraint=constraint, message=error["msg"]))
    return errors


def _validate(model: type[BaseModel], payload: Any) -> BaseModel:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInput(to_field_errors(exc.errors(include_url=False))) from exc


def validate_create(schema: RecordSchema, payload: Any) -> dict:
    """Validate a full payload; absent optional fields take their default."""
    instance = _validate(schema.create_model, payload)
    return {name: getattr(instance, name) for name in schema.field_names}


def validate_update(schema: RecordSchema, payload: Any) -> dict:
    """Validate a partial payload; only fields actually sent are returned."""
    instance = _validate(schema.update_model, payload)
    return {
        name: getattr(instance, name)
        for name in schema.field_names
        if name in instance.model_fields_set
    }
