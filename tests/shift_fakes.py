"""In-memory stand-ins for every repository port, the ERP gateway and the publisher."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from src.shift_workflow.shift_workflow.authorizations.model import NewAuthorization, ShiftAuthorization
from src.shift_workflow.shift_workflow.branches.model import Branch, UserBranchAssignment
from src.shift_workflow.shift_workflow.core.enums import (
    ApprovalStage,
    AuthorizationStatus,
    CheckInStatus,
    EmploymentStatus,
    ExchangeStatus,
    JobState,
    LogType,
    ShiftStatus,
)
from src.shift_workflow.shift_workflow.core.exceptions import NotFoundError
from src.shift_workflow.shift_workflow.directory.model import ApproverRef, Company, DirectoryUser, TenantUser
from src.shift_workflow.shift_workflow.exchanges.model import (
    ExchangeUpdate,
    NewExchangeRequest,
    ShiftExchangeRequest,
)
from src.shift_workflow.shift_workflow.jobs.model import DeferredJob
from src.shift_workflow.shift_workflow.notifications.model import NewNotification, Notification
from src.shift_workflow.shift_workflow.pos.model import NewPosVerification, PosSession, PosVerification
from src.shift_workflow.shift_workflow.shifts.model import NewShiftLog, ShiftFields, ShiftLogEntry, ShiftRecord
from src.shift_workflow.shift_workflow.tenants.model import TenantStores

NOW = datetime(2026, 3, 2, 9, 0, 0)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_shift(
    shift_id: int = 1,
    *,
    odoo_shift_id: int = 501,
    branch_id: int = 1,
    user_id: Optional[int] = 7,
    start: datetime = datetime(2026, 3, 2, 9, 0, 0),
    end: datetime = datetime(2026, 3, 2, 17, 0, 0),
    status: ShiftStatus = ShiftStatus.OPEN,
    branch_odoo_id: Optional[str] = "11",
    **extra: Any,
) -> ShiftRecord:
    return ShiftRecord(
        shift_id=shift_id,
        odoo_shift_id=odoo_shift_id,
        branch_id=branch_id,
        user_id=user_id,
        employee_name=extra.pop("employee_name", "Ana Cruz"),
        shift_start=start,
        shift_end=end,
        allocated_hours=(end - start).total_seconds() / 3600.0,
        status=status,
        branch_name=extra.pop("branch_name", "Main"),
        branch_odoo_id=branch_odoo_id,
        **extra,
    )


class FakeBranchRepo:
    def __init__(self, branches: Sequence[Branch] = (), assignments: Sequence[UserBranchAssignment] = ()):
        self.branches = {b.branch_id: b for b in branches}
        self.assignments: List[UserBranchAssignment] = list(assignments)
        self.fail_assignments = False

    def get_by_id(self, branch_id):
        return self.branches.get(int(branch_id))

    def get_by_erp_id(self, odoo_branch_id):
        for branch in self.branches.values():
            if branch.odoo_branch_id == str(odoo_branch_id):
                return branch
        return None

    def list_assignments(self, user_ids):
        if self.fail_assignments:
            raise RuntimeError("assignments unavailable")
        wanted = {int(u) for u in user_ids}
        return [a for a in self.assignments if a.user_id in wanted]

    def reassign_user_to_branch(self, *, user_id, branch_id):
        main_ids = {b.branch_id for b in self.branches.values() if b.is_main_branch}
        kept = [a for a in self.assignments if a.user_id != user_id or a.branch_id in main_ids]
        if not any(a.user_id == user_id and a.branch_id == branch_id for a in kept):
            kept.append(UserBranchAssignment(user_id=user_id, branch_id=branch_id))
        self.assignments = kept
        return sorted(a.branch_id for a in kept if a.user_id == user_id)


class FakeShiftRepo:
    def __init__(self, shifts: Sequence[ShiftRecord] = ()):
        self.shifts: Dict[int, ShiftRecord] = {s.shift_id: s for s in shifts}
        self.deleted: List[int] = []

    def get_by_id(self, shift_id):
        return self.shifts.get(int(shift_id))

    def get_by_erp_id(self, *, odoo_shift_id, branch_id):
        for shift in self.shifts.values():
            if shift.odoo_shift_id == int(odoo_shift_id) and shift.branch_id == int(branch_id):
                return shift
        return None

    def insert(self, *, odoo_shift_id, branch_id, fields: ShiftFields):
        shift_id = max(self.shifts, default=0) + 1
        shift = ShiftRecord(
            shift_id=shift_id,
            odoo_shift_id=odoo_shift_id,
            branch_id=branch_id,
            user_id=fields.user_id,
            employee_name=fields.employee_name,
            shift_start=fields.shift_start,
            shift_end=fields.shift_end,
            allocated_hours=fields.allocated_hours,
            employee_avatar_url=fields.employee_avatar_url,
            duty_type=fields.duty_type,
            duty_color=fields.duty_color,
            odoo_payload=fields.odoo_payload,
        )
        self.shifts[shift_id] = shift
        return shift

    def update_fields(self, *, shift_id, fields: ShiftFields):
        shift = replace(
            self.shifts[shift_id],
            user_id=fields.user_id,
            employee_name=fields.employee_name,
            shift_start=fields.shift_start,
            shift_end=fields.shift_end,
            allocated_hours=fields.allocated_hours,
            employee_avatar_url=fields.employee_avatar_url,
            duty_type=fields.duty_type,
            duty_color=fields.duty_color,
            odoo_payload=fields.odoo_payload,
        )
        self.shifts[shift_id] = shift
        return shift

    def mark_checked_in(self, shift_id):
        self.shifts[shift_id] = replace(
            self.shifts[shift_id], status=ShiftStatus.ACTIVE, check_in_status=CheckInStatus.CHECKED_IN
        )

    def mark_checked_out(self, shift_id, *, total_worked_hours):
        self.shifts[shift_id] = replace(
            self.shifts[shift_id],
            check_in_status=CheckInStatus.CHECKED_OUT,
            total_worked_hours=total_worked_hours,
        )

    def mark_ended(self, shift_id):
        shift = self.shifts.get(int(shift_id))
        if not shift or shift.status != ShiftStatus.ACTIVE:
            return False
        self.shifts[shift.shift_id] = replace(shift, status=ShiftStatus.ENDED)
        return True

    def delete_with_history(self, shift_id):
        self.deleted.append(shift_id)
        return self.shifts.pop(int(shift_id), None) is not None

    def list_open_assigned(self):
        return [s for s in self.shifts.values() if s.status == ShiftStatus.OPEN and s.user_id is not None]

    def bump_pending(self, shift_id, delta):
        shift = self.shifts.get(shift_id)
        if shift:
            self.shifts[shift_id] = replace(shift, pending_approvals=shift.pending_approvals + delta)


class FakeLogRepo:
    def __init__(self, logs: Sequence[ShiftLogEntry] = ()):
        self.logs: Dict[int, ShiftLogEntry] = {l.log_id: l for l in logs}

    def _store(self, entry: NewShiftLog) -> ShiftLogEntry:
        log_id = max(self.logs, default=0) + 1
        log = ShiftLogEntry(
            log_id=log_id,
            shift_id=entry.shift_id,
            branch_id=entry.branch_id,
            log_type=entry.log_type,
            event_time=entry.event_time,
            odoo_attendance_id=entry.odoo_attendance_id,
            worked_hours=entry.worked_hours,
            cumulative_minutes=entry.cumulative_minutes,
            changes=entry.changes,
            odoo_payload=entry.odoo_payload,
        )
        self.logs[log_id] = log
        return log

    def append(self, entry):
        return self._store(entry)

    def record_attendance(self, entry):
        existing = self.find_attendance_log(odoo_attendance_id=entry.odoo_attendance_id, log_type=entry.log_type)
        if existing:
            return existing, False
        return self._store(entry), True

    def get_by_id(self, log_id):
        return self.logs.get(int(log_id))

    def find_attendance_log(self, *, odoo_attendance_id, log_type):
        for log in self.logs.values():
            if log.odoo_attendance_id == odoo_attendance_id and log.log_type == log_type:
                return log
        return None

    def of_type(self, log_type: LogType) -> List[ShiftLogEntry]:
        return [l for l in self.logs.values() if l.log_type == log_type]


class FakeAuthorizationRepo:
    """Keeps the owning shift's pending counter in step, like the SQL adapter's transaction."""

    def __init__(self, shifts: FakeShiftRepo):
        self._shifts = shifts
        self.items: Dict[int, ShiftAuthorization] = {}

    def create(self, new: NewAuthorization):
        if self.find_for_log(shift_log_id=new.shift_log_id, auth_type=new.auth_type):
            return None
        authorization_id = max(self.items, default=0) + 1
        authorization = ShiftAuthorization(
            authorization_id=authorization_id,
            shift_id=new.shift_id,
            shift_log_id=new.shift_log_id,
            branch_id=new.branch_id,
            user_id=new.user_id,
            auth_type=new.auth_type,
            diff_minutes=new.diff_minutes,
            needs_employee_reason=new.needs_employee_reason,
            status=new.status,
            created_at=NOW,
        )
        self.items[authorization_id] = authorization
        if new.status == AuthorizationStatus.PENDING:
            self._shifts.bump_pending(new.shift_id, 1)
        return authorization

    def get_by_id(self, authorization_id):
        return self.items.get(int(authorization_id))

    def find_for_log(self, *, shift_log_id, auth_type):
        for item in self.items.values():
            if item.shift_log_id == shift_log_id and item.auth_type == auth_type:
                return item
        return None

    def set_employee_reason(self, *, authorization_id, reason):
        item = self.items.get(authorization_id)
        if not item or not item.is_pending:
            return None
        self.items[authorization_id] = replace(item, employee_reason=reason)
        return self.items[authorization_id]

    def resolve(self, *, authorization_id, status, resolved_by, resolved_at, overtime_type=None, rejection_reason=None):
        item = self.items.get(authorization_id)
        if not item or not item.is_pending:
            return None
        self.items[authorization_id] = replace(
            item,
            status=status,
            resolved_by=resolved_by,
            resolved_at=resolved_at,
            overtime_type=overtime_type,
            rejection_reason=rejection_reason,
        )
        self._shifts.bump_pending(item.shift_id, -1)
        return self.items[authorization_id]

    def list(self, *, branch_ids=(), status=None, limit=200):
        rows = [
            a
            for a in self.items.values()
            if (not branch_ids or a.branch_id in branch_ids) and (status is None or a.status == status)
        ]
        return rows[:limit]


class FakeNotificationRepo:
    def __init__(self):
        self.items: List[Notification] = []
        self.fail = False

    def insert(self, new: NewNotification):
        if self.fail:
            raise RuntimeError("notifications table unavailable")
        notification = Notification(
            notification_id=len(self.items) + 1,
            user_id=new.user_id,
            title=new.title,
            message=new.message,
            severity=new.severity,
            link_url=new.link_url,
            created_at=NOW,
        )
        self.items.append(notification)
        return notification

    def titles_for(self, user_id: int) -> List[str]:
        return [n.title for n in self.items if n.user_id == user_id]


class FakeTenantUserRepo:
    def __init__(self, users: Sequence[TenantUser] = ()):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))


class FakePosRepo:
    def __init__(self):
        self.sessions: Dict[int, PosSession] = {}
        self.verifications: List[PosVerification] = []

    def get_session(self, *, odoo_session_id, branch_id):
        for session in self.sessions.values():
            if session.odoo_session_id == odoo_session_id and session.branch_id == branch_id:
                return session
        return None

    def find_session_by_name(self, *, branch_id, session_name):
        for session in self.sessions.values():
            if session.branch_id == branch_id and session_name in (session.session_name, session.odoo_session_id):
                return session
        return None

    def create_session(self, *, branch_id, odoo_session_id, session_name, odoo_payload):
        session_id = len(self.sessions) + 1
        self.sessions[session_id] = PosSession(
            session_id=session_id,
            branch_id=branch_id,
            odoo_session_id=odoo_session_id,
            session_name=session_name,
            odoo_payload=odoo_payload,
        )
        return self.sessions[session_id]

    def update_session(self, *, session_id, session_name, odoo_payload):
        self.sessions[session_id] = replace(self.sessions[session_id], session_name=session_name, odoo_payload=odoo_payload)
        return self.sessions[session_id]

    def count_verifications(self, session_id):
        return sum(1 for v in self.verifications if v.pos_session_id == session_id)

    def add_verification(self, new: NewPosVerification):
        verification = PosVerification(
            verification_id=len(self.verifications) + 1,
            branch_id=new.branch_id,
            pos_session_id=new.pos_session_id,
            verification_type=new.verification_type,
            title=new.title,
            amount=new.amount,
            cashier_user_id=new.cashier_user_id,
            customer_user_id=new.customer_user_id,
            odoo_payload=new.odoo_payload,
        )
        self.verifications.append(verification)
        return verification


def make_stores(
    name: str,
    *,
    branches: Sequence[Branch] = (),
    shifts: Sequence[ShiftRecord] = (),
    logs: Sequence[ShiftLogEntry] = (),
    users: Sequence[TenantUser] = (),
    assignments: Sequence[UserBranchAssignment] = (),
) -> TenantStores:
    shift_repo = FakeShiftRepo(shifts)
    return TenantStores(
        name=name,
        branches=FakeBranchRepo(branches, assignments),
        shifts=shift_repo,
        logs=FakeLogRepo(logs),
        authorizations=FakeAuthorizationRepo(shift_repo),
        notifications=FakeNotificationRepo(),
        users=FakeTenantUserRepo(users),
        pos=FakePosRepo(),
    )


class FakeTenantRouter:
    def __init__(self, *stores: TenantStores):
        self.stores = {s.name: s for s in stores}
        self.broken: Set[str] = set()

    def resolve(self, tenant):
        if tenant in self.broken:
            raise RuntimeError(f"cannot connect to {tenant}")
        if tenant not in self.stores:
            raise NotFoundError(f"Tenant store not found: {tenant}")
        return self.stores[tenant]

    def exists(self, tenant):
        return tenant in self.stores

    def teardown(self, tenant):
        self.stores.pop(tenant, None)


class FakeDirectory:
    def __init__(self):
        self.companies: Dict[int, Company] = {}
        self.users: Dict[int, DirectoryUser] = {}
        self.access: Set[Tuple[int, int]] = set()
        self.branch_designations: Set[Tuple[int, int, int]] = set()
        self.roles: Dict[int, Set[str]] = {}

    def add_company(self, company_id: int, name: str, db_name: str, *, is_active: bool = True) -> Company:
        company = Company(company_id=company_id, name=name, slug=name.lower(), db_name=db_name, is_active=is_active)
        self.companies[company_id] = company
        return company

    def add_user(
        self,
        user_id: int,
        first_name: str,
        *,
        companies: Sequence[int] = (),
        roles: Sequence[str] = (),
        user_key: Optional[str] = None,
        is_active: bool = True,
        employment_status: EmploymentStatus = EmploymentStatus.ACTIVE,
    ) -> DirectoryUser:
        user = DirectoryUser(
            user_id=user_id,
            first_name=first_name,
            last_name="Test",
            email=f"{first_name.lower()}@example.com",
            user_key=user_key if user_key is not None else f"key-{user_id}",
            is_active=is_active,
            employment_status=employment_status,
        )
        self.users[user_id] = user
        for company_id in companies:
            self.access.add((user_id, company_id))
        self.roles[user_id] = {r.lower() for r in roles}
        return user

    def designate(self, user_id: int, company_id: int, branch_id: int) -> None:
        self.branch_designations.add((user_id, company_id, branch_id))

    def get_active_company(self, company_id):
        company = self.companies.get(int(company_id))
        return company if company and company.is_active else None

    def list_active_companies(self):
        return [c for c in self.companies.values() if c.is_active]

    def list_accessible_companies(self, user_id):
        rows = [c for c in self.list_active_companies() if (int(user_id), c.company_id) in self.access]
        return sorted(rows, key=lambda c: c.name)

    def load_users(self, user_ids):
        return {int(u): self.users[int(u)] for u in user_ids if int(u) in self.users}

    def load_designations(self, user_ids):
        wanted = {int(u) for u in user_ids}
        return (
            {a for a in self.access if a[0] in wanted},
            {b for b in self.branch_designations if b[0] in wanted},
        )

    def has_active_access(self, *, user_id, company_id):
        return (int(user_id), int(company_id)) in self.access

    def _holders(self, company_ids, role_name):
        for user in self.users.values():
            if not user.is_active or role_name not in self.roles.get(user.user_id, set()):
                continue
            for company_id in company_ids:
                if (user.user_id, company_id) in self.access:
                    yield user, company_id
                    break

    def any_user_with_role(self, *, company_ids, role_name):
        return any(True for _ in self._holders(company_ids, role_name))

    def list_users_with_role(self, *, company_ids, role_name, exclude_user_ids=()):
        return [
            ApproverRef(user_id=user.user_id, company_id=company_id, company_db_name=self.companies[company_id].db_name)
            for user, company_id in self._holders(company_ids, role_name)
            if user.user_id not in exclude_user_ids
        ]


class FakeExchangeRepo:
    def __init__(self):
        self.items: Dict[int, ShiftExchangeRequest] = {}

    def insert(self, new: NewExchangeRequest):
        request_id = max(self.items, default=0) + 1
        self.items[request_id] = ShiftExchangeRequest(
            request_id=request_id,
            requester=new.requester,
            accepting=new.accepting,
            requested_by=new.requested_by,
            status=ExchangeStatus.PENDING,
            approval_stage=ApprovalStage.AWAITING_EMPLOYEE,
            created_at=new.created_at,
            updated_at=new.created_at,
        )
        return self.items[request_id]

    def get_by_id(self, request_id):
        return self.items.get(int(request_id))

    def has_pending_for_shift(self, *, company_id, shift_id):
        for item in self.items.values():
            if item.status != ExchangeStatus.PENDING:
                continue
            for side in (item.requester, item.accepting):
                if side.company_id == company_id and side.shift_id == shift_id:
                    return True
        return False

    def transition(self, *, request_id, expected_stage, update: ExchangeUpdate):
        item = self.items.get(int(request_id))
        if not item or not item.is_at(expected_stage):
            return None
        changes = {"status": update.status, "approval_stage": update.approval_stage, "updated_at": update.updated_at}
        for name in (
            "employee_decision_at",
            "employee_rejection_reason",
            "hr_decision_by",
            "hr_decision_at",
            "hr_rejection_reason",
        ):
            value = getattr(update, name)
            if value is not None:
                changes[name] = value
        self.items[request_id] = replace(item, **changes)
        return self.items[request_id]

    def list_for_company(self, *, company_id, branch_ids=(), status=None):
        rows = []
        for item in self.items.values():
            if company_id not in item.company_ids:
                continue
            if status is not None and item.status != status:
                continue
            if branch_ids and not {item.requester.branch_id, item.accepting.branch_id} & set(branch_ids):
                continue
            rows.append(item)
        return rows


class FakeJobRepo:
    def __init__(self):
        self.jobs: Dict[int, DeferredJob] = {}
        self.archived: Dict[int, DeferredJob] = {}

    def insert_if_absent(self, *, queue_name, payload, singleton_key, start_after, retry_limit, retry_delay_seconds, now):
        if singleton_key and any(j.singleton_key == singleton_key for j in self.jobs.values()):
            return None
        job_id = max([*self.jobs, *self.archived], default=0) + 1
        self.jobs[job_id] = DeferredJob(
            job_id=job_id,
            queue_name=queue_name,
            payload=dict(payload),
            start_after=start_after,
            singleton_key=singleton_key,
            retry_limit=retry_limit,
            retry_delay_seconds=retry_delay_seconds,
            created_at=now,
        )
        return job_id

    def claim_due(self, *, queue_name, now, limit):
        due = sorted(
            (
                j
                for j in self.jobs.values()
                if j.queue_name == queue_name
                and j.state in (JobState.CREATED, JobState.RETRY)
                and j.start_after <= now
            ),
            key=lambda j: (j.start_after, j.job_id),
        )[:limit]
        claimed = []
        for job in due:
            active = replace(job, state=JobState.ACTIVE, attempts=job.attempts + 1, started_at=now)
            self.jobs[job.job_id] = active
            claimed.append(active)
        return claimed

    def schedule_retry(self, *, job_id, retry_at, error, now):
        self.jobs[job_id] = replace(self.jobs[job_id], state=JobState.RETRY, start_after=retry_at, last_error=error)

    def archive(self, *, job_id, state, error, now):
        job = self.jobs.pop(job_id)
        self.archived[job_id] = replace(job, state=state, last_error=error)

    def requeue_expired(self, *, queue_name, started_before, now):
        count = 0
        for job in list(self.jobs.values()):
            if job.queue_name == queue_name and job.state == JobState.ACTIVE and job.started_at < started_before:
                self.jobs[job.job_id] = replace(job, state=JobState.RETRY, start_after=now)
                count += 1
        return count


class RecordingPublisher:
    def __init__(self, *, fail: bool = False):
        self.events: List[Tuple[str, str, str, Any]] = []
        self.fail = fail

    def publish(self, tenant, room, event, payload):
        if self.fail:
            raise ConnectionError("socket server down")
        self.events.append((tenant, room, event, payload))

    def names(self) -> List[str]:
        return [e[2] for e in self.events]

    def of(self, event: str) -> List[Any]:
        return [e[3] for e in self.events if e[2] == event]


class FakeErp:
    def __init__(self, resources: Optional[Dict[Tuple[str, int], int]] = None):
        self.resources = dict(resources or {})
        self.calls: List[Tuple[str, tuple]] = []
        self.fail_on: Optional[str] = None
        self.work_entries: Dict[int, List[Dict[str, Any]]] = {}

    def _record(self, name: str, *args):
        self.calls.append((name, args))
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    def set_planning_slot_state(self, slot_id, state):
        self._record("set_planning_slot_state", slot_id, state)

    def resolve_resource_id(self, user_key, erp_company_id):
        self._record("resolve_resource_id", user_key, erp_company_id)
        return self.resources.get((user_key, erp_company_id))

    def set_planning_slot_resource(self, slot_id, resource_id):
        self._record("set_planning_slot_resource", slot_id, resource_id)

    def update_attendance_check_in(self, attendance_id, when):
        self._record("update_attendance_check_in", attendance_id, when)

    def update_attendance_check_out(self, attendance_id, when):
        self._record("update_attendance_check_out", attendance_id, when)

    def search_work_entries_by_attendance(self, attendance_id):
        self._record("search_work_entries_by_attendance", attendance_id)
        return self.work_entries.get(attendance_id, [])

    def update_work_entry_date_start(self, entry_id, when):
        self._record("update_work_entry_date_start", entry_id, when)

    def update_work_entry_date_stop(self, entry_id, when):
        self._record("update_work_entry_date_stop", entry_id, when)

    def close(self):
        self._record("close")

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]
