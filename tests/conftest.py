from __future__ import annotations

import pytest

from shift_fakes import (
    FakeDirectory,
    FakeErp,
    FakeJobRepo,
    FakeTenantRouter,
    FixedClock,
    RecordingPublisher,
    make_stores,
)
from src.shift_workflow.shift_workflow.authorizations.early_checkin import EarlyCheckInReviewQueue
from src.shift_workflow.shift_workflow.authorizations.service import AuthorizationService
from src.shift_workflow.shift_workflow.branches.model import Branch
from src.shift_workflow.shift_workflow.directory.model import TenantUser
from src.shift_workflow.shift_workflow.erp.attendance_sync import AttendanceSync
from src.shift_workflow.shift_workflow.ingestion.service import IngestionService
from src.shift_workflow.shift_workflow.jobs.scheduler import JobScheduler
from src.shift_workflow.shift_workflow.notifications.service import NotificationService

TENANT = "tenant_a"


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def erp():
    return FakeErp()


@pytest.fixture
def job_repo():
    return FakeJobRepo()


@pytest.fixture
def scheduler(job_repo, clock):
    return JobScheduler(job_repo, clock=clock)


@pytest.fixture
def stores():
    return make_stores(
        TENANT,
        branches=[
            Branch(branch_id=1, name="Main", odoo_branch_id="11", is_main_branch=True),
            Branch(branch_id=2, name="North", odoo_branch_id="12"),
        ],
        users=[TenantUser(user_id=7, first_name="Ana", last_name="Cruz"), TenantUser(user_id=90, first_name="Hana", last_name="Reyes")],
    )


@pytest.fixture
def tenants(stores):
    return FakeTenantRouter(stores)


@pytest.fixture
def review_queue(scheduler):
    return EarlyCheckInReviewQueue(scheduler)


@pytest.fixture
def auth_service(tenants, publisher, review_queue, erp, clock):
    return AuthorizationService(
        tenants,
        NotificationService(publisher),
        publisher,
        review_queue=review_queue,
        attendance_sync=AttendanceSync(erp),
        clock=clock,
    )


@pytest.fixture
def directory(stores):
    directory = FakeDirectory()
    directory.add_company(1, "Alpha", stores.name)
    return directory


@pytest.fixture
def ingestion_service(tenants, directory, auth_service, publisher, clock):
    return IngestionService(tenants, directory, auth_service, publisher, clock=clock)
