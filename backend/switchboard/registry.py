"""
Switchboard — Schema Registry
===============================

What:  Maps schema names ("User") to their ORM model and readable form.
How:   A plain object holding a dict of SchemaDefinition entries. Defining a
       name twice with the same model returns the existing entry, so start-up
       code can call define() as often as it likes; defining it with a
       different model is a conflict.
Who:   The database bootstrap registers "User" here. Code that only knows a
       schema by name looks it up here.

The module-level `schemas` registry is what connect() uses when no registry
is passed in. Tests and embedders can build their own.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Type

from pydantic import BaseModel

from switchboard.exceptions import SchemaConflictError, SchemaNotFoundError
from switchboard.models.user import User
from switchboard.schemas.user import UserRead

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaDefinition:
    """A named record shape: where it is stored and how it is read."""

    name: str
    model: type
    readable: Type[BaseModel]

    def to_readable(self, record: Any) -> Dict[str, Any]:
        """Serialize one ORM record into its JSON-compatible readable form."""
        return self.readable.model_validate(record).model_dump(mode="json", by_alias=True)


class SchemaRegistry:
    """Name → SchemaDefinition lookup, safe to share between threads."""

    def __init__(self) -> None:
        self._definitions: Dict[str, SchemaDefinition] = {}
        self._lock = threading.Lock()

    def define(self, name: str, model: type, readable: Type[BaseModel]) -> SchemaDefinition:
        with self._lock:
            existing = self._definitions.get(name)
            if existing is not None:
                if existing.model is not model or existing.readable is not readable:
                    raise SchemaConflictError(
                        name,
                        context={
                            "existing_model": existing.model.__name__,
                            "new_model": model.__name__,
                        },
                    )
                return existing

            definition = SchemaDefinition(name=name, model=model, readable=readable)
            self._definitions[name] = definition
            logger.debug("Registered schema '%s' → %s", name, model.__name__)
            return definition

    def get(self, name: str) -> SchemaDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise SchemaNotFoundError(name) from None

    def names(self) -> List[str]:
        return list(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


schemas = SchemaRegistry()


def register_user_schema(registry: SchemaRegistry) -> SchemaDefinition:
    """Define "User" on the given registry (idempotent)."""
    return registry.define("User", User, UserRead)


def to_readable(record: Any, registry: SchemaRegistry = schemas) -> Dict[str, Any]:
    """
    Readable form of any registered record.

    Looks the record's class up by its name, so the schema has to be
    registered (connect() does that) before records can be rendered.
    """
    return registry.get(type(record).__name__).to_readable(record)
