"""Column-level write permissions and role-scoped read filters."""
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Tuple, Union

from checklist_service.core.roles import Caller, Column, Role

# Each role owns exactly one approval column.
ROLE_COLUMNS: Dict[Role, Tuple[Column, ...]] = {
    Role.EMPLOYEE: (Column.EMPLOYEE_CHECKED,),
    Role.CHT: (Column.CHT_CHECKED,),
    Role.ASM: (Column.ASM_CHECKED,),
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    denied_columns: List[Union[Column, str]] = field(default_factory=list)


class ColumnAccessGate:

    @staticmethod
    def allowed_columns(role: Role) -> Tuple[Column, ...]:
        return ROLE_COLUMNS.get(role, ())

    @classmethod
    def validate(cls, role: Role, requested_columns: Iterable[Column]) -> AccessDecision:
        allowed = {col.value for col in cls.allowed_columns(role)}
        denied = []
        for col in requested_columns:
            name = col.value if isinstance(col, Column) else str(col)
            if name not in allowed:
                denied.append(col)
        return AccessDecision(allowed=not denied, denied_columns=denied)


def _own_records(model, caller: Caller):
    return [model.staff_id == caller.subject_id]


def _all_records(model, caller: Caller):
    return []


# Reviewers see every staff member's records; employees only their own.
STAFF_SCOPE: Dict[Role, Callable] = {
    Role.EMPLOYEE: _own_records,
    Role.CHT: _all_records,
    Role.ASM: _all_records,
}


def staff_scope(model, caller: Caller) -> list:
    """WHERE clauses restricting ``model`` rows to what ``caller`` may see."""
    return STAFF_SCOPE[caller.role](model, caller)
