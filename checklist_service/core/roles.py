from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class Role(str, Enum):
    EMPLOYEE = "employee"
    CHT = "cht"   # store supervisor
    ASM = "asm"   # area manager

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Validate a role string once at the boundary."""
        try:
            return cls(value.strip().lower())
        except (AttributeError, ValueError):
            raise ValueError(f"Unknown role: {value!r}") from None


class Column(str, Enum):
    EMPLOYEE_CHECKED = "employee_checked"
    CHT_CHECKED = "cht_checked"
    ASM_CHECKED = "asm_checked"


@dataclass(frozen=True)
class Caller:
    role: Role
    subject_id: str
    store_ids: Tuple[str, ...] = field(default_factory=tuple)
