"""
Identity & staff master tests.

Tests cover:
  - Lookups: get_staff / role_of / manager_of / get_staff_for
  - Managers create, update, delete; staff cannot
  - Hierarchy rules: manager must be a top-level manager, no self-loop,
    depth two, no demotion with subordinates
  - Unique email, referenced members are not deletable
  - Cache invalidation on manager / role change
"""

import pytest

from daily_reports.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from daily_reports.models.staff import StaffRole
from daily_reports.services import hierarchy_resolver, identity_service


class TestLookups:
    def test_role_and_manager(self, team):
        assert identity_service.role_of(team.a.id) is StaffRole.MANAGER
        assert identity_service.role_of(team.b.id) is StaffRole.STAFF
        assert identity_service.manager_of(team.b.id) == team.a.id
        assert identity_service.manager_of(team.a.id) is None

    def test_missing(self):
        with pytest.raises(NotFoundError):
            identity_service.get_staff(9999)

    def test_list_staff(self, team):
        assert {m.id for m in identity_service.list_staff(team.a.id)} == {team.a.id, team.b.id, team.c.id}
        assert [m.id for m in identity_service.list_staff(team.e.id)] == [team.e.id]

    def test_get_staff_for(self, team):
        assert identity_service.get_staff_for(team.a.id, team.b.id).id == team.b.id
        with pytest.raises(ForbiddenError):
            identity_service.get_staff_for(team.a.id, team.e.id)
        with pytest.raises(ForbiddenError):
            identity_service.get_staff_for(team.b.id, team.a.id)

    def test_list_unassigned(self, team):
        assert [m.id for m in identity_service.list_unassigned_staff(team.a.id)] == [team.f.id]
        with pytest.raises(ForbiddenError):
            identity_service.list_unassigned_staff(team.b.id)


class TestCreateStaff:
    def test_manager_creates_subordinate(self, team):
        hierarchy_resolver.allowed_staff_ids(team.a.id)
        member = identity_service.create_staff(
            team.a.id, name="New Hire", email="new@example.com", manager_id=team.a.id,
        )
        assert member.role == "staff"
        assert member.id in hierarchy_resolver.allowed_staff_ids(team.a.id)

    def test_staff_cannot_create(self, team):
        with pytest.raises(ForbiddenError):
            identity_service.create_staff(team.b.id, name="X", email="x@example.com")

    def test_duplicate_email(self, team):
        with pytest.raises(ConflictError):
            identity_service.create_staff(team.a.id, name="Dup", email=team.b.email.upper())

    def test_manager_must_be_manager(self, team):
        with pytest.raises(ValidationError):
            identity_service.create_staff(team.a.id, name="X", email="x@example.com", manager_id=team.b.id)

    def test_manager_must_exist(self, team):
        with pytest.raises(ValidationError):
            identity_service.create_staff(team.a.id, name="X", email="x@example.com", manager_id=9999)

    def test_depth_two(self, team, make_staff):
        middle = make_staff("Middle", role="manager", manager=team.a)
        with pytest.raises(ValidationError):
            identity_service.create_staff(team.a.id, name="X", email="x@example.com", manager_id=middle.id)


class TestUpdateStaff:
    def test_reassign_invalidates_both_managers(self, team):
        assert team.b.id in hierarchy_resolver.allowed_staff_ids(team.a.id)
        assert team.b.id not in hierarchy_resolver.allowed_staff_ids(team.d.id)

        # D cannot reassign B (not in D's view), A can
        with pytest.raises(ForbiddenError):
            identity_service.update_staff(team.d.id, team.b.id, {"manager_id": team.d.id})
        identity_service.update_staff(team.a.id, team.b.id, {"manager_id": team.d.id})

        assert team.b.id not in hierarchy_resolver.allowed_staff_ids(team.a.id)
        assert team.b.id in hierarchy_resolver.allowed_staff_ids(team.d.id)

    def test_adopt_unassigned(self, team):
        identity_service.update_staff(team.d.id, team.f.id, {"manager_id": team.d.id})
        assert team.f.id in hierarchy_resolver.allowed_staff_ids(team.d.id)

    def test_self_manager(self, team):
        with pytest.raises(ValidationError):
            identity_service.update_staff(team.a.id, team.a.id, {"manager_id": team.a.id})

    def test_member_with_subordinates_cannot_get_manager(self, team):
        with pytest.raises(ValidationError):
            identity_service.update_staff(team.a.id, team.a.id, {"manager_id": team.d.id})

    def test_cannot_demote_manager_with_subordinates(self, team):
        with pytest.raises(ConflictError):
            identity_service.update_staff(team.a.id, team.a.id, {"role": "staff"})

    def test_promote_invalidates_self(self, team):
        identity_service.update_staff(team.a.id, team.c.id, {"role": "manager", "manager_id": None})
        assert identity_service.role_of(team.c.id) is StaffRole.MANAGER
        assert hierarchy_resolver.allowed_staff_ids(team.c.id) == {team.c.id}

    def test_rename(self, team):
        member = identity_service.update_staff(team.a.id, team.b.id, {"name": "Renamed"})
        assert member.name == "Renamed"

    def test_email_conflict(self, team):
        with pytest.raises(ConflictError):
            identity_service.update_staff(team.a.id, team.b.id, {"email": team.c.email})


class TestDeleteStaff:
    def test_delete_unreferenced(self, team, make_staff):
        temp_id = make_staff("Temp", manager=team.a).id
        identity_service.delete_staff(team.a.id, temp_id)
        assert temp_id not in hierarchy_resolver.allowed_staff_ids(team.a.id)

    def test_cannot_delete_self(self, team):
        with pytest.raises(ForbiddenError):
            identity_service.delete_staff(team.a.id, team.a.id)

    def test_cannot_delete_with_reports(self, team, make_report):
        make_report(team.b)
        with pytest.raises(ConflictError):
            identity_service.delete_staff(team.a.id, team.b.id)

