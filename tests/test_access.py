"""Column ownership per role and role-scoped read filters."""
import pytest

from checklist_service.core.roles import Caller, Column, Role
from checklist_service.models.approval import ApprovalRecord
from checklist_service.services.access import ColumnAccessGate, staff_scope


class TestColumnAccessGate:

    @pytest.mark.parametrize(
        "role, column",
        [
            (Role.EMPLOYEE, Column.EMPLOYEE_CHECKED),
            (Role.CHT, Column.CHT_CHECKED),
            (Role.ASM, Column.ASM_CHECKED),
        ],
    )
    def test_role_may_write_its_own_column(self, role, column):
        decision = ColumnAccessGate.validate(role, [column])
        assert decision.allowed
        assert decision.denied_columns == []

    def test_cht_cannot_write_employee_column(self):
        decision = ColumnAccessGate.validate(Role.CHT, [Column.EMPLOYEE_CHECKED])
        assert not decision.allowed
        assert decision.denied_columns == [Column.EMPLOYEE_CHECKED]

    def test_every_foreign_column_is_reported(self):
        decision = ColumnAccessGate.validate(
            Role.EMPLOYEE,
            [Column.EMPLOYEE_CHECKED, Column.CHT_CHECKED, Column.ASM_CHECKED],
        )
        assert not decision.allowed
        assert decision.denied_columns == [Column.CHT_CHECKED, Column.ASM_CHECKED]

    def test_empty_request_is_allowed(self):
        assert ColumnAccessGate.validate(Role.ASM, []).allowed

    def test_plain_strings_are_accepted(self):
        assert ColumnAccessGate.validate(Role.CHT, ["cht_checked"]).allowed
        decision = ColumnAccessGate.validate(Role.CHT, ["bogus"])
        assert decision.denied_columns == ["bogus"]

    def test_each_role_owns_exactly_one_column(self):
        owned = [ColumnAccessGate.allowed_columns(role) for role in Role]
        assert all(len(cols) == 1 for cols in owned)
        assert len({cols[0] for cols in owned}) == len(Role)


class TestRole:

    def test_parse_normalizes_case_and_whitespace(self):
        assert Role.parse(" CHT ") is Role.CHT

    def test_parse_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            Role.parse("admin")


class TestStaffScope:

    def test_employee_sees_only_own_records(self):
        caller = Caller(role=Role.EMPLOYEE, subject_id="emp-001")
        clauses = staff_scope(ApprovalRecord, caller)
        assert len(clauses) == 1
        assert clauses[0].right.value == "emp-001"

    @pytest.mark.parametrize("role", [Role.CHT, Role.ASM])
    def test_reviewers_see_everyone(self, role):
        assert staff_scope(ApprovalRecord, Caller(role=role, subject_id="x")) == []
