from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Daily attendance status as recorded by the attendance module."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half_day"
    LEAVE = "leave"
    HOLIDAY = "holiday"


class BenefitStatus(str, Enum):
    """Lifecycle of an employee's enrolment in a catalog benefit."""

    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class BenefitFrequency(str, Enum):
    ONE_TIME = "one_time"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"


class ConceptType(str, Enum):
    """Payroll earning categories (Argentine payslip terminology)."""

    REMUNERATIVO = "remunerativo"
    NO_REMUNERATIVO = "no_remunerativo"
    INDEMNIZACION = "indemnizacion"


class EvaluatorRole(str, Enum):
    SELF = "self"
    MANAGER = "manager"
    PEER = "peer"
    SUBORDINATE = "subordinate"


class EvaluationStatus(str, Enum):
    """Evaluation instance workflow status.

    SUBMITTED is only kept so older stored rows still load; submission moves an
    instance straight to MANAGER_REVIEW, HR_REVIEW or COMPLETED.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    MANAGER_REVIEW = "manager-review"
    HR_REVIEW = "hr-review"
    COMPLETED = "completed"


class CycleStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class WorkflowType(str, Enum):
    LEAVE_APPROVAL = "leave-approval"
    EVALUATION_REVIEW = "evaluation-review"
    BENEFIT_ENROLLMENT = "benefit-enrollment"
    DOCUMENT_APPROVAL = "document-approval"
    CUSTOM = "custom"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class TemplateType(str, Enum):
    SELF = "self"
    MANAGER = "manager"
    THREE_SIXTY = "360"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    PROBATION = "probation"
