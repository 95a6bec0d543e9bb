from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .authorizations.early_checkin import EarlyCheckInReviewQueue
from .authorizations.factory import AuthorizationRuleFactory
from .authorizations.mysql_authorization_repository import MySQLAuthorizationRepository
from .authorizations.service import AuthorizationService
from .branches.mysql_branch_repository import MySQLBranchRepository
from .core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_JOB_EXPIRE_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_RETRY_LIMIT,
    EARLY_CHECKIN_QUEUE_NAME,
)
from .database.bootstrap import database_exists
from .database.connection import DBConfig, DatabaseConnection
from .directory.mysql_directory_repository import MySQLDirectoryRepository, MySQLTenantUserRepository
from .erp.attendance_sync import AttendanceSync
from .erp.client import ERPConfig, OdooClient
from .erp.gateway import ErpGateway
from .exchanges.mysql_exchange_repository import MySQLShiftExchangeRepository
from .exchanges.service import ShiftExchangeService
from .ingestion.service import IngestionService
from .jobs.mysql_job_repository import MySQLJobRepository
from .jobs.scheduler import JobScheduler
from .notifications.fanout import InProcessPublisher, Publisher
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.service import NotificationService
from .pos.mysql_pos_repository import MySQLPosRepository
from .pos.service import PosIngestionService
from .shifts.mysql_shift_repository import MySQLShiftLogRepository, MySQLShiftRepository
from .tenants.model import TenantStores
from .tenants.router import CachingTenantRouter, TenantRouter


@dataclass(frozen=True)
class Container:
    master_conn: DatabaseConnection

    tenants: TenantRouter
    directory_repo: MySQLDirectoryRepository
    exchanges_repo: MySQLShiftExchangeRepository
    jobs_repo: MySQLJobRepository
    erp: ErpGateway
    publisher: Publisher

    scheduler: JobScheduler
    review_queue: EarlyCheckInReviewQueue
    notification_service: NotificationService
    authorization_service: AuthorizationService
    ingestion_service: IngestionService
    pos_service: PosIngestionService
    exchange_service: ShiftExchangeService


def build_tenant_stores(config: DBConfig) -> TenantStores:
    conn = DatabaseConnection(config)
    return TenantStores(
        name=config.database,
        branches=MySQLBranchRepository(conn),
        shifts=MySQLShiftRepository(conn),
        logs=MySQLShiftLogRepository(conn),
        authorizations=MySQLAuthorizationRepository(conn),
        notifications=MySQLNotificationRepository(conn),
        users=MySQLTenantUserRepository(conn),
        pos=MySQLPosRepository(conn),
    )


def build_container(
    *,
    master_db_config: Mapping[str, Any],
    tenant_db_defaults: Optional[Mapping[str, Any]] = None,
    erp_config: Optional[Mapping[str, Any]] = None,
    jobs_config: Optional[Mapping[str, Any]] = None,
    publisher: Publisher | None = None,
) -> Container:
    master = DBConfig.from_mapping(master_db_config)
    tenant_template = DBConfig.from_mapping(tenant_db_defaults or master_db_config)
    jobs_config = jobs_config or {}

    master_conn = DatabaseConnection(master)
    tenants = CachingTenantRouter(
        lambda name: build_tenant_stores(tenant_template.for_database(name)),
        probe=lambda name: database_exists(tenant_template.for_database(name)),
    )

    directory_repo = MySQLDirectoryRepository(master_conn)
    exchanges_repo = MySQLShiftExchangeRepository(master_conn)
    jobs_repo = MySQLJobRepository(master_conn)
    erp = OdooClient(ERPConfig.from_mapping(erp_config or {}))
    publisher = publisher or InProcessPublisher()

    scheduler = JobScheduler(
        jobs_repo,
        poll_interval_seconds=float(jobs_config.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS)),
        batch_size=int(jobs_config.get("batch_size", DEFAULT_BATCH_SIZE)),
        expire_seconds=int(jobs_config.get("expire_seconds", DEFAULT_JOB_EXPIRE_SECONDS)),
    )
    review_queue = EarlyCheckInReviewQueue(
        scheduler,
        queue_name=str(jobs_config.get("early_checkin_queue_name", EARLY_CHECKIN_QUEUE_NAME)),
        retry_limit=jobs_config.get("early_checkin_retry_limit", DEFAULT_RETRY_LIMIT),
        retry_delay_seconds=int(jobs_config.get("retry_delay_seconds", DEFAULT_RETRY_DELAY_SECONDS)),
    )

    notification_service = NotificationService(publisher)
    authorization_service = AuthorizationService(
        tenants,
        notification_service,
        publisher,
        review_queue=review_queue,
        rule_factory=AuthorizationRuleFactory(),
        attendance_sync=AttendanceSync(erp),
    )
    scheduler.register(review_queue.queue_name, authorization_service.handle_review_job)

    ingestion_service = IngestionService(tenants, directory_repo, authorization_service, publisher)
    pos_service = PosIngestionService(tenants, publisher)
    exchange_service = ShiftExchangeService(
        directory_repo,
        tenants,
        exchanges_repo,
        erp,
        notification_service,
    )

    return Container(
        master_conn=master_conn,
        tenants=tenants,
        directory_repo=directory_repo,
        exchanges_repo=exchanges_repo,
        jobs_repo=jobs_repo,
        erp=erp,
        publisher=publisher,
        scheduler=scheduler,
        review_queue=review_queue,
        notification_service=notification_service,
        authorization_service=authorization_service,
        ingestion_service=ingestion_service,
        pos_service=pos_service,
        exchange_service=exchange_service,
    )
