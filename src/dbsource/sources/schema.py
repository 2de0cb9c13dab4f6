"""Record schemas and declared-vs-discovered reconciliation.

Schemas use the Avro-style JSON form the host exchanges:

    {
        "type": "record",
        "name": "output",
        "fields": [
            {"name": "id", "type": "long"},
            {"name": "name", "type": ["string", "null"]},
            {"name": "created", "type": {"type": "int", "logicalType": "date"}}
        ]
    }
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field

from dbsource.core.exceptions import ConfigurationError
from dbsource.core.models.base import FieldType, LogicalType, ValidationFailure

FieldValidationFailure = ValidationFailure

SCHEMA_PROPERTY = "schema"


class FieldSchema(BaseModel):
    """One field of a record schema."""

    name: str
    type: FieldType
    logical_type: LogicalType | None = None
    nullable: bool = False
    precision: int | None = None
    scale: int | None = None

    @property
    def display_name(self) -> str:
        """Human-readable type, ignoring nullability."""
        match self.logical_type:
            case None:
                return self.type.value
            case LogicalType.DECIMAL:
                return f"decimal with precision {self.precision} and scale {self.scale}"
            case LogicalType.TIME_MICROS:
                return "time"
            case LogicalType.TIMESTAMP_MICROS:
                return "timestamp"
            case _:
                return self.logical_type.value

    def same_type(self, other: FieldSchema) -> bool:
        """Compare base and logical types with nullability stripped."""
        return self.type == other.type and self.logical_type == other.logical_type

    def to_json_type(self) -> Any:
        base: Any = self.type.value
        if self.logical_type is not None:
            base = {"type": self.type.value, "logicalType": self.logical_type.value}
            if self.logical_type == LogicalType.DECIMAL:
                base["precision"] = self.precision
                base["scale"] = self.scale
        return [base, "null"] if self.nullable else base


class RecordSchema(BaseModel):
    """Ordered record schema."""

    name: str = "outputSchema"
    fields: list[FieldSchema] = Field(default_factory=list)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> FieldSchema | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_json(self) -> str:
        return json.dumps(
            {
                "type": "record",
                "name": self.name,
                "fields": [{"name": f.name, "type": f.to_json_type()} for f in self.fields],
            }
        )

    @classmethod
    def parse_json(cls, text: str) -> RecordSchema:
        """Parse an Avro-style JSON record schema.

        Raises:
            ConfigurationError: If the text is not a valid record schema
        """
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Unable to parse schema '{text}'. Reason: {e}") from e

        if not isinstance(raw, dict) or raw.get("type") != "record":
            raise ConfigurationError(f"Unable to parse schema '{text}'. Reason: not a record schema")

        fields = []
        for raw_field in raw.get("fields") or []:
            try:
                fields.append(_parse_field(raw_field))
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Unable to parse schema '{text}'. Reason: invalid field {raw_field!r}: {e}"
                ) from e
        return cls(name=raw.get("name") or "outputSchema", fields=fields)


def _parse_field(raw: dict[str, Any]) -> FieldSchema:
    name = raw["name"]
    type_spec = raw["type"]
    nullable = False

    if isinstance(type_spec, list):
        non_null = [t for t in type_spec if t != "null"]
        if len(non_null) != 1:
            raise ValueError("only [<type>, 'null'] unions are supported")
        nullable = len(non_null) != len(type_spec)
        type_spec = non_null[0]

    if isinstance(type_spec, str):
        return FieldSchema(name=name, type=FieldType(type_spec), nullable=nullable)

    logical = type_spec.get("logicalType")
    return FieldSchema(
        name=name,
        type=FieldType(type_spec["type"]),
        logical_type=LogicalType(logical) if logical else None,
        nullable=nullable,
        precision=type_spec.get("precision"),
        scale=type_spec.get("scale"),
    )


def reconcile(
    discovered: RecordSchema, declared: RecordSchema | None
) -> list[FieldValidationFailure]:
    """Check a declared schema against the schema discovered from the database.

    Every declared field must exist in the discovered schema with the same
    base and logical type; nullability is ignored on both sides. Extra
    discovered fields are allowed.

    Args:
        discovered: Schema read from the probe query's result metadata
        declared: Schema configured by the user

    Returns:
        Failures in declared field order (empty when compatible)
    """
    if declared is None:
        return [
            FieldValidationFailure(
                message="Schema should not be null or empty.",
                config_properties=[SCHEMA_PROPERTY],
            )
        ]

    failures: list[FieldValidationFailure] = []
    for expected in declared.fields:
        actual = discovered.get_field(expected.name)
        if actual is None:
            failures.append(
                FieldValidationFailure(
                    message=f"Schema field '{expected.name}' is not present in actual record",
                    output_field=expected.name,
                )
            )
            continue

        if not actual.same_type(expected):
            failures.append(
                FieldValidationFailure(
                    message=(
                        f"Schema field '{expected.name}' has type '{expected.display_name}' "
                        f"but found '{actual.display_name}'."
                    ),
                    output_field=expected.name,
                )
            )
    return failures
