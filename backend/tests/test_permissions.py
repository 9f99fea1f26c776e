"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  FIELDFORCE - Authorization Policy (Direct Python Tests)                     ║
║                                                                              ║
║  1. Admin is allowed everything with no scope                                ║
║  2. MR lists are scoped to the MR, records of others are Forbidden           ║
║  3. Owner edits are limited to mutable states                                ║
║  4. Admin-only fields are dropped from MR payloads                           ║
║  5. Products and MR requests follow their own rules                          ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import pytest
from fastapi import HTTPException

from services.permissions import (
    DenyReason,
    Identity,
    Operation,
    ResourceKind,
    Role,
    authorize,
    enforce,
    force_owner,
    normalize_role,
    roles_match,
    sanitize_payload,
)

ADMIN = Identity(id="admin-1", role=Role.ADMIN, name="Admin")
MR_A = Identity(id="mr-a", role=Role.MR, name="MR A")
MR_B = Identity(id="mr-b", role=Role.MR, name="MR B")
MANAGER = Identity(id="mgr-1", role=Role.MANAGER, name="Manager")


class TestAdmin:

    @pytest.mark.parametrize("kind", list(ResourceKind))
    @pytest.mark.parametrize("operation", list(Operation))
    def test_admin_allowed_without_scope(self, kind, operation):
        decision = authorize(ADMIN, kind, operation)
        assert decision.allowed
        assert decision.scope == {}

    def test_admin_keeps_admin_only_fields(self):
        payload = {"mr": "mr-b", "status": "Approved", "approvedBy": "x"}
        assert sanitize_payload(ADMIN, ResourceKind.VISIT_REPORT, payload) == payload


class TestMRScoping:

    def test_list_scoped_to_self(self):
        decision = authorize(MR_A, ResourceKind.VISIT_REPORT, Operation.LIST)
        assert decision.allowed
        assert decision.scope == {"mr": "mr-a"}

    def test_doctor_scope_uses_assignment_array(self):
        decision = authorize(MR_A, ResourceKind.DOCTOR, Operation.LIST)
        assert decision.scope == {"assignedMRs": "mr-a"}

    def test_read_other_mr_record_forbidden(self):
        report = {"id": "v1", "mr": "mr-b", "status": "Draft"}
        decision = authorize(MR_A, ResourceKind.VISIT_REPORT, Operation.READ, report)
        assert not decision.allowed
        assert decision.reason == DenyReason.FORBIDDEN

    def test_read_own_record_allowed(self):
        report = {"id": "v1", "mr": "mr-a", "status": "Approved"}
        assert authorize(MR_A, ResourceKind.VISIT_REPORT, Operation.READ, report).allowed

    def test_doctor_membership(self):
        doctor = {"id": "d1", "assignedMRs": ["mr-b", "mr-a"]}
        assert authorize(MR_A, ResourceKind.DOCTOR, Operation.UPDATE, doctor).allowed
        doctor = {"id": "d2", "assignedMRs": ["mr-b"]}
        assert authorize(MR_A, ResourceKind.DOCTOR, Operation.UPDATE, doctor).reason == DenyReason.FORBIDDEN

    def test_doctor_delete_admin_only(self):
        doctor = {"id": "d1", "assignedMRs": ["mr-a"]}
        decision = authorize(MR_A, ResourceKind.DOCTOR, Operation.DELETE, doctor)
        assert decision.reason == DenyReason.FORBIDDEN

    def test_create_allowed(self):
        assert authorize(MR_A, ResourceKind.ORDER, Operation.CREATE).allowed

    def test_targets_read_only_for_mr(self):
        assert authorize(MR_A, ResourceKind.MR_TARGET, Operation.LIST).scope == {"mr": "mr-a"}
        assert authorize(MR_A, ResourceKind.MR_TARGET, Operation.CREATE).reason == DenyReason.FORBIDDEN
        assert authorize(MR_A, ResourceKind.MR_PERFORMANCE, Operation.UPDATE).reason == DenyReason.FORBIDDEN


class TestStates:

    @pytest.mark.parametrize("status", ["Draft", "Submitted"])
    def test_mr_updates_open_visit_report(self, status):
        report = {"id": "v1", "mr": "mr-a", "status": status}
        assert authorize(MR_A, ResourceKind.VISIT_REPORT, Operation.UPDATE, report).allowed
        assert authorize(MR_A, ResourceKind.VISIT_REPORT, Operation.DELETE, report).allowed

    @pytest.mark.parametrize("status", ["Approved", "Rejected"])
    def test_mr_cannot_touch_terminal_visit_report(self, status):
        report = {"id": "v1", "mr": "mr-a", "status": status}
        decision = authorize(MR_A, ResourceKind.VISIT_REPORT, Operation.UPDATE, report)
        assert not decision.allowed
        assert decision.reason == DenyReason.INVALID_STATE

    def test_admin_can_touch_terminal_visit_report(self):
        report = {"id": "v1", "mr": "mr-a", "status": "Approved"}
        assert authorize(ADMIN, ResourceKind.VISIT_REPORT, Operation.UPDATE, report).allowed

    @pytest.mark.parametrize("status,allowed", [
        ("Pending", True), ("Confirmed", True), ("Processing", False),
        ("Shipped", False), ("Delivered", False), ("Cancelled", False),
    ])
    def test_mr_order_edit_window(self, status, allowed):
        order = {"id": "o1", "mr": "mr-a", "status": status}
        assert authorize(MR_A, ResourceKind.ORDER, Operation.UPDATE, order).allowed is allowed

    def test_ownership_checked_before_state(self):
        order = {"id": "o1", "mr": "mr-b", "status": "Delivered"}
        assert authorize(MR_A, ResourceKind.ORDER, Operation.UPDATE, order).reason == DenyReason.FORBIDDEN


class TestPayloadShaping:

    def test_mr_cannot_set_owner_or_terminal_status(self):
        payload = {"mr": "mr-b", "status": "Approved", "doctor": "d1", "approvedBy": "mr-a"}
        cleaned = sanitize_payload(MR_A, ResourceKind.VISIT_REPORT, payload)
        assert cleaned == {"doctor": "d1"}

    def test_mr_can_set_non_terminal_status(self):
        cleaned = sanitize_payload(MR_A, ResourceKind.VISIT_REPORT, {"status": "Submitted"})
        assert cleaned == {"status": "Submitted"}

    def test_order_admin_fields_dropped(self):
        payload = {"status": "Delivered", "internalNotes": "x", "notes": "ok"}
        assert sanitize_payload(MR_A, ResourceKind.ORDER, payload) == {"notes": "ok"}

    def test_doctor_assignment_dropped(self):
        payload = {"name": "Dr X", "assignedMRs": ["mr-b"], "isActive": False}
        assert sanitize_payload(MR_A, ResourceKind.DOCTOR, payload) == {"name": "Dr X"}

    def test_user_self_edit_limited_to_phone(self):
        payload = {"phone": "999", "role": "Admin", "isActive": True, "name": "New"}
        assert sanitize_payload(MR_A, ResourceKind.USER, payload) == {"phone": "999"}

    def test_force_owner(self):
        assert force_owner(MR_A, ResourceKind.ORDER, {"mr": "mr-b"})["mr"] == "mr-a"
        assert force_owner(MR_A, ResourceKind.DOCTOR, {})["assignedMRs"] == ["mr-a"]
        assert force_owner(ADMIN, ResourceKind.ORDER, {"mr": "mr-b"})["mr"] == "mr-b"


class TestOwnerlessAndPublic:

    def test_products_read_by_anyone_authenticated(self):
        for identity in (MR_A, MANAGER):
            assert authorize(identity, ResourceKind.PRODUCT, Operation.LIST).allowed
            assert authorize(identity, ResourceKind.PRODUCT, Operation.READ).allowed

    def test_products_written_by_admin_only(self):
        assert authorize(MR_A, ResourceKind.PRODUCT, Operation.CREATE).reason == DenyReason.FORBIDDEN

    def test_mr_request_public_create(self):
        assert authorize(None, ResourceKind.MR_REQUEST, Operation.CREATE).allowed

    def test_mr_request_other_operations(self):
        assert authorize(None, ResourceKind.MR_REQUEST, Operation.LIST).reason == DenyReason.UNAUTHENTICATED
        assert authorize(MR_A, ResourceKind.MR_REQUEST, Operation.LIST).reason == DenyReason.FORBIDDEN
        assert authorize(ADMIN, ResourceKind.MR_REQUEST, Operation.UPDATE).allowed

    def test_unauthenticated_denied(self):
        assert authorize(None, ResourceKind.ORDER, Operation.LIST).reason == DenyReason.UNAUTHENTICATED


class TestManager:

    def test_denied_owner_scoped_resources(self):
        for kind in (ResourceKind.VISIT_REPORT, ResourceKind.ORDER, ResourceKind.DOCTOR):
            assert authorize(MANAGER, kind, Operation.LIST).reason == DenyReason.FORBIDDEN

    def test_reads_own_profile(self):
        assert authorize(MANAGER, ResourceKind.USER, Operation.READ, {"id": "mgr-1"}).allowed
        assert not authorize(MANAGER, ResourceKind.USER, Operation.READ, {"id": "mr-a"}).allowed


class TestRolesAndIdentity:

    @pytest.mark.parametrize("raw", ["admin", "ADMIN", "Admin", " admin "])
    def test_normalize_role(self, raw):
        assert normalize_role(raw) == Role.ADMIN

    def test_roles_match_case_insensitive(self):
        assert roles_match("MR", "mr")
        assert not roles_match("MR", "admin")
        assert not roles_match(None, "mr")

    def test_identity_from_legacy_document(self):
        doc = {
            "id": "u1",
            "personalInfo": {"name": "Legacy", "email": "legacy@test.com"},
            "workInfo": {"role": "mr", "territory": "West"},
            "isActive": True,
        }
        identity = Identity.from_document(doc)
        assert identity.role == Role.MR
        assert identity.name == "Legacy"
        assert identity.email == "legacy@test.com"
        assert identity.territory == "West"

    def test_identity_without_role(self):
        assert Identity.from_document({"id": "u2"}).role is None


class TestEnforce:

    def test_allow_returns_scope(self):
        assert enforce(authorize(MR_A, ResourceKind.ORDER, Operation.LIST)) == {"mr": "mr-a"}

    @pytest.mark.parametrize("identity,kind,operation,code", [
        (None, ResourceKind.ORDER, Operation.LIST, 401),
        (MR_A, ResourceKind.PRODUCT, Operation.DELETE, 403),
    ])
    def test_deny_raises(self, identity, kind, operation, code):
        with pytest.raises(HTTPException) as exc:
            enforce(authorize(identity, kind, operation))
        assert exc.value.status_code == code

    def test_invalid_state_is_400(self):
        order = {"id": "o1", "mr": "mr-a", "status": "Shipped"}
        with pytest.raises(HTTPException) as exc:
            enforce(authorize(MR_A, ResourceKind.ORDER, Operation.DELETE, order))
        assert exc.value.status_code == 400
