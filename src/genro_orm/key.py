# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Key: identity of one entity row (entity type + numeric id)."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import KeyAlreadyPersistentError


@dataclass(frozen=True)
class Key:
    """Immutable identity of an entity.

    A key without id is *transient* (the row was never inserted). Inserting
    the entity produces a *persistent* key via persist(); the transient key
    itself is never modified.

    Attributes:
        type: Registered entity type name (e.g. "Person").
        id: Row identifier, None while transient.
    """

    type: str
    id: int | None = None

    @classmethod
    def transient(cls, type: str) -> Key:
        """Return a new key for an entity that has no row yet."""
        return cls(type, None)

    @property
    def is_persistent(self) -> bool:
        return self.id is not None

    @property
    def is_transient(self) -> bool:
        return self.id is None

    def persist(self, id: int) -> Key:
        """Return the persistent key for this transient key.

        Raises:
            KeyAlreadyPersistentError: If this key already has an id.
        """
        if self.id is not None:
            raise KeyAlreadyPersistentError(f"Key {self} already has id {self.id}")
        return Key(self.type, int(id))

    def __str__(self) -> str:
        return f"{self.type}#{'new' if self.id is None else self.id}"


__all__ = ["Key"]
