from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceAggregator
from .benefits.mysql_benefit_repository import MySQLBenefitAssignmentRepository
from .benefits.repository import BenefitAssignmentRepository
from .benefits.service import BenefitCostResolver
from .common.datetime_utils import utc_now
from .common.events import EventOutbox
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .evaluations.analytics import EvaluationAnalyticsService
from .evaluations.cycle_service import CycleService
from .evaluations.mysql_evaluation_repository import (
    MySQLEvaluationCycleRepository,
    MySQLEvaluationRepository,
    MySQLEvaluationTemplateRepository,
)
from .evaluations.repository import (
    EvaluationCycleRepository,
    EvaluationRepository,
    EvaluationTemplateRepository,
)
from .evaluations.service import (
    EVALUATION_ASSIGNED,
    EVALUATION_HR_REVIEWED,
    EVALUATION_MANAGER_REVIEWED,
    EVALUATION_SUBMITTED,
    EvaluationService,
)
from .evaluations.template_service import TemplateService
from .notifications.handlers import EvaluationNotifier
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.mysql_workflow_repository import MySQLWorkflowRepository
from .notifications.repository import NotificationRepository, WorkflowRepository
from .notifications.service import NotificationService
from .notifications.workflow_service import WorkflowService
from .payroll.batch import PayrollBatchService
from .payroll.service import PayrollAutoCalcService
from .permissions.mysql_role_repository import MySQLRoleRepository
from .permissions.repository import RoleRepository
from .permissions.service import PermissionService


@dataclass(frozen=True)
class Repositories:
    employees: EmployeeRepository
    attendance: AttendanceRepository
    benefits: BenefitAssignmentRepository
    evaluations: EvaluationRepository
    templates: EvaluationTemplateRepository
    cycles: EvaluationCycleRepository
    roles: RoleRepository
    notifications: NotificationRepository
    workflows: WorkflowRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    repos: Repositories
    outbox: EventOutbox

    payroll_auto_calc_service: PayrollAutoCalcService
    payroll_batch_service: PayrollBatchService
    evaluation_service: EvaluationService
    template_service: TemplateService
    cycle_service: CycleService
    evaluation_analytics_service: EvaluationAnalyticsService
    permission_service: PermissionService
    notification_service: NotificationService
    workflow_service: WorkflowService


def build_services(
    repos: Repositories,
    *,
    conn: Optional[DatabaseConnection] = None,
    clock: Callable = utc_now,
) -> Container:
    """Wire services over ``repos`` and subscribe the event handlers."""
    outbox = EventOutbox()

    payroll_auto_calc_service = PayrollAutoCalcService(
        AttendanceAggregator(repos.attendance),
        BenefitCostResolver(repos.benefits),
        employees=repos.employees,
    )
    payroll_batch_service = PayrollBatchService(repos.employees, payroll_auto_calc_service)
    evaluation_service = EvaluationService(repos.evaluations, repos.templates, outbox, clock=clock)
    template_service = TemplateService(repos.templates, repos.cycles, clock=clock)
    cycle_service = CycleService(
        repos.cycles, repos.evaluations, repos.templates, repos.employees, outbox, clock=clock
    )
    evaluation_analytics_service = EvaluationAnalyticsService(repos.evaluations, repos.cycles, repos.templates)
    permission_service = PermissionService(repos.roles)
    notification_service = NotificationService(repos.notifications, clock=clock)
    workflow_service = WorkflowService(repos.workflows, notification_service, clock=clock)

    # Cycle statistics first, then notifications.
    for name in (EVALUATION_SUBMITTED, EVALUATION_MANAGER_REVIEWED, EVALUATION_HR_REVIEWED):
        outbox.subscribe(name, cycle_service.on_evaluation_changed)
    notifier = EvaluationNotifier(notification_service)
    outbox.subscribe(EVALUATION_ASSIGNED, notifier.on_assigned)
    outbox.subscribe(EVALUATION_SUBMITTED, notifier.on_submitted)
    outbox.subscribe(EVALUATION_MANAGER_REVIEWED, notifier.on_reviewed)
    outbox.subscribe(EVALUATION_HR_REVIEWED, notifier.on_reviewed)

    return Container(
        conn=conn,
        repos=repos,
        outbox=outbox,
        payroll_auto_calc_service=payroll_auto_calc_service,
        payroll_batch_service=payroll_batch_service,
        evaluation_service=evaluation_service,
        template_service=template_service,
        cycle_service=cycle_service,
        evaluation_analytics_service=evaluation_analytics_service,
        permission_service=permission_service,
        notification_service=notification_service,
        workflow_service=workflow_service,
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    repos = Repositories(
        employees=MySQLEmployeeRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        benefits=MySQLBenefitAssignmentRepository(conn),
        evaluations=MySQLEvaluationRepository(conn),
        templates=MySQLEvaluationTemplateRepository(conn),
        cycles=MySQLEvaluationCycleRepository(conn),
        roles=MySQLRoleRepository(conn),
        notifications=MySQLNotificationRepository(conn),
        workflows=MySQLWorkflowRepository(conn),
    )
    return build_services(repos, conn=conn)
