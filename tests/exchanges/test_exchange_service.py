from __future__ import annotations

from dataclasses import replace

import pytest

from shift_fakes import (
    FakeDirectory,
    FakeErp,
    FakeExchangeRepo,
    FakeTenantRouter,
    FixedClock,
    RecordingPublisher,
    make_shift,
    make_stores,
)
from src.shift_workflow.shift_workflow.branches.model import Branch, UserBranchAssignment
from src.shift_workflow.shift_workflow.core.enums import ApprovalStage, EmploymentStatus, ExchangeStatus, ShiftStatus
from src.shift_workflow.shift_workflow.core.exceptions import (
    ConflictError,
    ExternalDependencyError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from src.shift_workflow.shift_workflow.exchanges.service import ShiftExchangeService
from src.shift_workflow.shift_workflow.notifications.service import NotificationService

HR = ["Human Resources"]
MANAGEMENT = ["Management"]


class World:
    def __init__(self):
        self.alpha = make_stores(
            "tenant_a",
            branches=[Branch(branch_id=1, name="Alpha Main", odoo_branch_id="11", is_main_branch=True)],
            shifts=[
                make_shift(1, odoo_shift_id=501, branch_id=1, user_id=7, branch_odoo_id="11"),
                make_shift(2, odoo_shift_id=502, branch_id=1, user_id=8, branch_odoo_id="11"),
            ],
        )
        self.beta = make_stores(
            "tenant_b",
            branches=[Branch(branch_id=5, name="Beta Main", odoo_branch_id="21", is_main_branch=True)],
            shifts=[make_shift(10, odoo_shift_id=901, branch_id=5, user_id=9, branch_odoo_id="21")],
        )
        self.tenants = FakeTenantRouter(self.alpha, self.beta)

        self.directory = FakeDirectory()
        self.directory.add_company(1, "Alpha", "tenant_a")
        self.directory.add_company(2, "Beta", "tenant_b")
        self.directory.add_user(7, "Ana", companies=[1, 2])
        self.directory.add_user(8, "Ben", companies=[1])
        self.directory.add_user(9, "Cy", companies=[1, 2])
        self.directory.add_user(90, "Hana", companies=[1, 2], roles=HR)
        self.directory.add_user(91, "Max", companies=[1, 2], roles=MANAGEMENT)
        self.directory.designate(7, 2, 5)
        self.directory.designate(9, 1, 1)

        self.erp = FakeErp({("key-9", 11): 1009, ("key-7", 21): 2007})
        self.exchanges = FakeExchangeRepo()
        self.clock = FixedClock()
        self.service = ShiftExchangeService(
            self.directory,
            self.tenants,
            self.exchanges,
            self.erp,
            NotificationService(RecordingPublisher()),
            clock=self.clock,
        )

    def propose_cross_company(self):
        return self.service.propose_exchange(
            requester_user_id=7, company_id=1, from_shift_id=1, to_shift_id=10, to_company_id=2
        )

    def accepted(self):
        detail = self.propose_cross_company()
        self.service.respond_to_exchange(request_id=detail["id"], actor_user_id=9, action="accept")
        return detail["id"]


@pytest.fixture
def world():
    return World()


def _option_keys(options):
    return [(o.company_id, o.shift_id) for o in options.options]


def test_eligible_targets_include_same_company_and_designated_cross_company(world):
    options = world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)

    assert options.from_shift.shift_id == 1
    assert _option_keys(options) == [(1, 2), (2, 10)]


def test_cross_company_target_needs_designation_both_ways(world):
    world.directory.branch_designations.discard((9, 1, 1))

    options = world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)

    assert _option_keys(options) == [(1, 2)]


def test_tenant_branch_assignment_counts_as_designation(world):
    world.directory.branch_designations.discard((9, 1, 1))
    world.alpha.branches.assignments.append(UserBranchAssignment(user_id=9, branch_id=1))

    options = world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)

    assert (2, 10) in _option_keys(options)


def test_unreadable_assignments_deny_instead_of_failing(world):
    world.directory.branch_designations.discard((9, 1, 1))
    world.alpha.branches.fail_assignments = True
    world.alpha.branches.assignments.append(UserBranchAssignment(user_id=9, branch_id=1))

    options = world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)

    assert _option_keys(options) == [(1, 2)]


def test_suspended_and_inactive_targets_are_skipped(world):
    world.directory.users[8] = replace(world.directory.users[8], employment_status=EmploymentStatus.SUSPENDED)
    world.directory.users[9] = replace(world.directory.users[9], is_active=False)

    options = world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)

    assert options.options == []


def test_source_shift_checks(world):
    with pytest.raises(NotFoundError, match="Source shift not found"):
        world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=404)
    with pytest.raises(ForbiddenError, match="Only the owner"):
        world.service.list_eligible_targets(requester_user_id=8, company_id=1, from_shift_id=1)

    world.alpha.shifts.shifts[1] = replace(world.alpha.shifts.shifts[1], status=ShiftStatus.ACTIVE)
    with pytest.raises(ConflictError, match="Source shift must be open"):
        world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)


def test_suspended_requester_cannot_exchange(world):
    world.directory.users[7] = replace(world.directory.users[7], employment_status=EmploymentStatus.SUSPENDED)

    with pytest.raises(ConflictError, match="Suspended users cannot exchange shifts"):
        world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)


def test_inactive_requester_cannot_exchange(world):
    world.directory.users[7] = replace(world.directory.users[7], is_active=False)

    with pytest.raises(ConflictError, match="Requester is inactive"):
        world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)


def test_propose_notifies_accepting_employee(world):
    detail = world.propose_cross_company()

    assert detail["status"] == "pending"
    assert detail["approval_stage"] == "awaiting_employee"
    assert detail["accepting"]["user_id"] == 9
    (notification,) = world.beta.notifications.items
    assert notification.user_id == 9
    assert notification.title == "Shift Exchange Request"
    assert notification.message == "Ana Test requested to exchange shifts with you."
    assert notification.link_url == f"/account/notifications?shiftExchangeId={detail['id']}"


def test_shift_with_pending_exchange_cannot_be_offered_again(world):
    world.propose_cross_company()

    with pytest.raises(ConflictError, match="already has a pending exchange request"):
        world.service.list_eligible_targets(requester_user_id=7, company_id=1, from_shift_id=1)

    options = world.service.list_eligible_targets(requester_user_id=8, company_id=1, from_shift_id=2)
    assert (2, 10) not in _option_keys(options)


def test_propose_rejects_ineligible_target(world):
    world.directory.branch_designations.discard((7, 2, 5))

    with pytest.raises(ValidationError, match="not eligible"):
        world.propose_cross_company()
    assert world.exchanges.items == {}


def test_only_accepting_employee_may_respond(world):
    request_id = world.propose_cross_company()["id"]

    with pytest.raises(ForbiddenError, match="Only the accepting employee can respond"):
        world.service.respond_to_exchange(request_id=request_id, actor_user_id=7, action="accept")
    with pytest.raises(ValidationError):
        world.service.respond_to_exchange(request_id=request_id, actor_user_id=9, action="maybe")


def test_employee_rejection_resolves_and_tells_requester(world):
    request_id = world.propose_cross_company()["id"]

    detail = world.service.respond_to_exchange(
        request_id=request_id, actor_user_id=9, action="reject", reason="family event"
    )

    assert detail["status"] == "rejected"
    assert detail["approval_stage"] == "resolved"
    assert detail["employee_rejection_reason"] == "family event"
    notification = world.alpha.notifications.items[-1]
    assert notification.user_id == 7
    assert notification.title == "Shift Exchange Rejected"
    assert notification.message == "Cy Test rejected your shift exchange request. Reason: family event"

    with pytest.raises(ConflictError, match="can no longer be responded to"):
        world.service.respond_to_exchange(request_id=request_id, actor_user_id=9, action="accept")


def test_acceptance_moves_to_hr_and_notifies_approvers(world):
    request_id = world.accepted()

    request = world.exchanges.get_by_id(request_id)
    assert request.approval_stage == ApprovalStage.AWAITING_HR
    assert request.status == ExchangeStatus.PENDING
    assert request.employee_decision_at == world.clock.now

    approver_notes = [n for n in world.alpha.notifications.items if n.user_id == 90]
    assert approver_notes[0].title == "Shift Exchange Pending Approval"
    assert approver_notes[0].message == "Ana Test and Cy Test shift exchange is pending HR approval."
    assert approver_notes[0].link_url == f"/authorization-requests?shiftExchangeId={request_id}"
    assert not [n for n in world.alpha.notifications.items if n.user_id == 91]


def test_inactive_employee_blocks_acceptance(world):
    request_id = world.propose_cross_company()["id"]
    world.directory.users[7] = replace(world.directory.users[7], is_active=False)

    with pytest.raises(ConflictError, match="Inactive employees"):
        world.service.respond_to_exchange(request_id=request_id, actor_user_id=9, action="accept")


def test_management_cannot_approve_when_hr_exists(world):
    request_id = world.accepted()

    with pytest.raises(ForbiddenError, match="Only Human Resources"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=91, actor_roles=MANAGEMENT)


def test_approver_needs_access_to_both_companies(world):
    request_id = world.accepted()
    world.directory.access.discard((90, 2))

    with pytest.raises(ForbiddenError, match="not assigned to the involved companies"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)


def test_management_approves_when_no_hr_has_access(world):
    world.directory.roles[90] = set()
    request_id = world.accepted()

    detail = world.service.approve_exchange(request_id=request_id, actor_user_id=91, actor_roles=MANAGEMENT)

    assert detail["status"] == "approved"


def test_approval_swaps_slots_in_erp_then_resolves(world):
    request_id = world.accepted()

    detail = world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)

    assert world.erp.calls == [
        ("set_planning_slot_state", (501, "draft")),
        ("set_planning_slot_state", (901, "draft")),
        ("resolve_resource_id", ("key-9", 11)),
        ("resolve_resource_id", ("key-7", 21)),
        ("set_planning_slot_resource", (501, 1009)),
        ("set_planning_slot_resource", (901, 2007)),
        ("set_planning_slot_state", (501, "published")),
        ("set_planning_slot_state", (901, "published")),
    ]
    assert detail["status"] == "approved"
    assert detail["approval_stage"] == "resolved"
    assert detail["hr_decision_by"] == {"user_id": 90, "name": "Hana Test"}
    assert "Shift Exchange Approved" in world.alpha.notifications.titles_for(7)
    assert "Shift Exchange Approved" in world.beta.notifications.titles_for(9)

    with pytest.raises(ConflictError, match="not awaiting HR approval"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)


def test_erp_failure_leaves_request_pending_for_retry(world):
    request_id = world.accepted()
    world.erp.fail_on = "set_planning_slot_resource"

    with pytest.raises(ExternalDependencyError, match="request remains pending HR approval"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)
    assert world.exchanges.get_by_id(request_id).approval_stage == ApprovalStage.AWAITING_HR

    world.erp.fail_on = None
    detail = world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)
    assert detail["status"] == "approved"


def test_resource_lookup_failure_leaves_request_and_shifts_untouched(world):
    request_id = world.accepted()
    before = world.exchanges.get_by_id(request_id)
    shifts_before = (world.alpha.shifts.get_by_id(1), world.beta.shifts.get_by_id(10))
    world.erp.fail_on = "resolve_resource_id"

    with pytest.raises(ExternalDependencyError, match="request remains pending HR approval"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)

    assert world.exchanges.get_by_id(request_id) == before
    assert (world.alpha.shifts.get_by_id(1), world.beta.shifts.get_by_id(10)) == shifts_before
    assert "set_planning_slot_resource" not in world.erp.names()


def test_unresolvable_erp_resource_is_a_conflict(world):
    request_id = world.accepted()
    world.erp.resources.pop(("key-7", 21))

    with pytest.raises(ConflictError, match="Could not resolve cross-company employee resources"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)
    assert "set_planning_slot_resource" not in world.erp.names()
    assert world.exchanges.get_by_id(request_id).approval_stage == ApprovalStage.AWAITING_HR


def test_shift_started_before_approval_is_a_conflict(world):
    request_id = world.accepted()
    world.beta.shifts.shifts[10] = replace(world.beta.shifts.shifts[10], status=ShiftStatus.ACTIVE)

    with pytest.raises(ConflictError, match="must still be open"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)
    assert world.erp.calls == []


def test_missing_branch_erp_company_is_rejected(world):
    request_id = world.accepted()
    world.alpha.shifts.shifts[1] = replace(world.alpha.shifts.shifts[1], branch_odoo_id=None)

    with pytest.raises(ValidationError, match="Requester branch ERP company ID is missing or invalid"):
        world.service.approve_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR)


def test_hr_rejection_requires_reason_and_notifies_both(world):
    request_id = world.accepted()

    with pytest.raises(ValidationError, match="Rejection reason is required"):
        world.service.reject_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR, reason=" ")

    detail = world.service.reject_exchange(request_id=request_id, actor_user_id=90, actor_roles=HR, reason="understaffed")

    assert detail["status"] == "rejected"
    assert detail["hr_rejection_reason"] == "understaffed"
    for stores, user_id in ((world.alpha, 7), (world.beta, 9)):
        note = [n for n in stores.notifications.items if n.user_id == user_id][-1]
        assert note.message == "Your shift exchange request was rejected by HR. Reason: understaffed"
    assert world.erp.calls == []


def test_detail_flags_follow_actor_and_stage(world):
    request_id = world.propose_cross_company()["id"]

    as_accepting = world.service.get_exchange_detail(request_id=request_id, actor_user_id=9, actor_roles=())
    assert as_accepting["can_respond"] is True
    assert as_accepting["can_approve"] is False

    world.service.respond_to_exchange(request_id=request_id, actor_user_id=9, action="accept")
    as_hr = world.service.get_exchange_detail(request_id=request_id, actor_user_id=90, actor_roles=HR)
    assert as_hr["can_respond"] is False
    assert as_hr["can_approve"] is True
    assert as_hr["approval_mode"] == "hr"
    assert as_hr["requester"]["company_name"] == "Alpha"
    assert as_hr["accepting"]["branch_name"] == "Main"

    with pytest.raises(ForbiddenError):
        world.service.get_exchange_detail(request_id=request_id, actor_user_id=8, actor_roles=())


def test_approval_queue_rows(world):
    request_id = world.accepted()

    rows = world.service.list_exchange_requests_for_approval_queue(company_id=2, status="pending")

    assert len(rows) == 1
    assert rows[0]["id"] == request_id
    assert rows[0]["auth_type"] == "shift_exchange"
    assert rows[0]["stage_label"] == "Pending HR Approval"
    assert rows[0]["requester_name"] == "Ana Test"
    assert rows[0]["accepting_company_name"] == "Beta"
    assert world.service.list_exchange_requests_for_approval_queue(company_id=2, status="approved") == []
    with pytest.raises(ValidationError):
        world.service.list_exchange_requests_for_approval_queue(company_id=2, status="weird")


def test_unknown_request_is_not_found(world):
    with pytest.raises(NotFoundError):
        world.service.respond_to_exchange(request_id=999, actor_user_id=9, action="accept")
