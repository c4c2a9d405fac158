# patch.py - Tri-state field updates for partial-update payloads
"""
A PATCH-style payload has three meanings per field:

* the key is missing            -> leave the stored value alone  (ABSENT)
* the key is present with null  -> store NULL                    (CLEAR)
* the key carries a value       -> store that value              (SET)

``FieldPatch`` makes that choice explicit instead of relying on
``None``/missing-key checks scattered through the services.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

T = TypeVar("T")


class PatchAction(str, Enum):
    ABSENT = "absent"
    CLEAR = "clear"
    SET = "set"


@dataclass(frozen=True)
class FieldPatch(Generic[T]):
    action: PatchAction = PatchAction.ABSENT
    value: Optional[T] = None

    @classmethod
    def absent(cls) -> "FieldPatch[T]":
        return cls()

    @classmethod
    def clear(cls) -> "FieldPatch[T]":
        return cls(PatchAction.CLEAR)

    @classmethod
    def set(cls, value: T) -> "FieldPatch[T]":
        if value is None:
            raise ValueError("FieldPatch.set() needs a value; use FieldPatch.clear()")
        return cls(PatchAction.SET, value)

    @classmethod
    def from_fields(
        cls,
        fields: Mapping[str, Any],
        key: str,
        parse: Optional[Callable[[Any], T]] = None,
    ) -> "FieldPatch[T]":
        """Build a patch from a mapping that only holds the keys the caller sent.

        With pydantic models pass ``model.model_dump(exclude_unset=True)``.
        """
        if key not in fields:
            return cls.absent()
        raw = fields[key]
        if raw is None:
            return cls.clear()
        return cls.set(parse(raw) if parse else raw)

    @property
    def is_absent(self) -> bool:
        return self.action == PatchAction.ABSENT

    @property
    def is_clear(self) -> bool:
        return self.action == PatchAction.CLEAR

    def apply(self, current: Optional[T]) -> Optional[T]:
        if self.action == PatchAction.SET:
            return self.value
        if self.action == PatchAction.CLEAR:
            return None
        return current
