# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Declarative entity mappings validated with pydantic.

A mapping describes how one entity type is stored: the table, the id column
(optionally backed by a sequence) and the mapped properties with their
logical column types.

Example:
    Mapping spec as accepted by Store.define_entity()::

        {
            "table": "person",
            "id": {"column": "id", "sequence": "person_id_seq"},
            "properties": {
                "name": {"type": "string", "length": 100},
                "age": {"type": "integer", "nullable": True},
                "employer": {"type": "object", "entity": "Company", "nullable": True},
            },
        }
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .errors import MappingError
from .sql.dialects.base import LOGICAL_TYPES


class IdMapping(BaseModel):
    """Id column and optional sequence name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    column: str = "id"
    sequence: str | None = None


class PropertyMapping(BaseModel):
    """Column definition of one mapped property.

    Attributes:
        type: Logical type name (see LOGICAL_TYPES).
        column: Column name. None means the property name is used.
        nullable: Whether NULL is allowed. Properties are NOT NULL by default.
        length: Length for string/character types.
        precision: Precision for decimal types.
        scale: Scale for decimal types.
        default: Column default. Inserts omit None values of such properties.
        unique: Include the column in the table's primary key clause.
        entity: Referenced entity type, required when type is "object".
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str
    column: str | None = None
    nullable: bool = False
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    default: Any = None
    unique: bool = False
    entity: str | None = None

    @field_validator("type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        if value not in LOGICAL_TYPES:
            raise ValueError(f"unknown logical type '{value}'")
        return value

    @model_validator(mode="after")
    def _check_reference(self) -> PropertyMapping:
        if self.type == "object" and not self.entity:
            raise ValueError("properties of type 'object' must name the referenced 'entity'")
        if self.entity and self.type != "object":
            raise ValueError("'entity' is only valid for properties of type 'object'")
        return self

    @property
    def is_reference(self) -> bool:
        return self.type == "object"


class Mapping(BaseModel):
    """Immutable mapping of one entity type onto a table."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    table: str
    id: IdMapping = IdMapping()
    properties: dict[str, PropertyMapping] = {}

    @model_validator(mode="after")
    def _check_columns(self) -> Mapping:
        seen = {self.id.column}
        for name, prop in self.properties.items():
            column = prop.column or name
            if column in seen:
                raise ValueError(f"column '{column}' is mapped more than once")
            seen.add(column)
        return self

    @classmethod
    def from_spec(cls, spec: Mapping | dict[str, Any]) -> Mapping:
        """Build a mapping from a spec dict (or return an existing Mapping).

        Raises:
            MappingError: If the spec is invalid, e.g. a property has no type.
        """
        if isinstance(spec, Mapping):
            return spec
        try:
            return cls.model_validate(spec)
        except ValidationError as e:
            raise MappingError(f"Invalid mapping: {e}") from e

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def table_name(self) -> str:
        return self.table

    @property
    def id_column_name(self) -> str:
        return self.id.column

    @property
    def id_sequence_name(self) -> str | None:
        return self.id.sequence

    def has_id_sequence(self) -> bool:
        return self.id.sequence is not None

    def column_for(self, name: str) -> str:
        """Return the column name of a mapped property.

        Raises:
            MappingError: If the property is not mapped.
        """
        prop = self.properties.get(name)
        if prop is None:
            raise MappingError(f"Property '{name}' is not mapped to table '{self.table}'")
        return prop.column or name

    def columns(self) -> Iterator[tuple[str, str, PropertyMapping]]:
        """Yield (property name, column name, property mapping) in mapping order."""
        for name, prop in self.properties.items():
            yield name, prop.column or name, prop


__all__ = ["IdMapping", "PropertyMapping", "Mapping"]
