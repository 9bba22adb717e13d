"""
Baggage

Key-value data that travels with a request across process and task
boundaries. The set of fields is fixed at import time.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class BaggageField:
    """Logical baggage name and the header key it travels under."""

    name: str
    key_name: str


USER_ID = BaggageField(name="user-id", key_name="baggage-user-id")
TENANT_ID = BaggageField(name="tenant-id", key_name="baggage-tenant-id")
CORRELATION_ID = BaggageField(name="correlation-id", key_name="baggage-correlation-id")

BAGGAGE_FIELDS: Tuple[BaggageField, ...] = (USER_ID, TENANT_ID, CORRELATION_ID)


class Baggage:
    """
    Immutable set of baggage values.

    Absent and empty values are both treated as unset.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[BaggageField, Optional[str]]] = None):
        cleaned: Dict[BaggageField, str] = {}
        for field, value in (values or {}).items():
            if field not in BAGGAGE_FIELDS:
                raise ValueError(f"Unknown baggage field: {field.name}")
            if value:
                cleaned[field] = value
        self._values = MappingProxyType(cleaned)

    @classmethod
    def of(
        cls,
        user_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> "Baggage":
        return cls({USER_ID: user_id, TENANT_ID: tenant_id, CORRELATION_ID: correlation_id})

    def get(self, field: BaggageField) -> Optional[str]:
        return self._values.get(field)

    def with_value(self, field: BaggageField, value: Optional[str]) -> "Baggage":
        """Return a copy with one field set (or cleared when value is empty)."""
        values = dict(self._values)
        values[field] = value
        return Baggage(values)

    def items(self) -> Iterator[Tuple[BaggageField, str]]:
        for field in BAGGAGE_FIELDS:
            if field in self._values:
                yield field, self._values[field]

    def as_dict(self) -> Dict[str, str]:
        """Logical name -> value, set fields only."""
        return {field.name: value for field, value in self.items()}

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Baggage):
            return NotImplemented
        return dict(self._values) == dict(other._values)

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __repr__(self) -> str:
        return f"Baggage({self.as_dict()!r})"


EMPTY_BAGGAGE = Baggage()
