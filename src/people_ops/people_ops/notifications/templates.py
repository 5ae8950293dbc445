from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..core.enums import NotificationType, Priority


@dataclass(frozen=True)
class NotificationTemplate:
    title: str
    message: str
    category: str
    type: NotificationType
    priority: Priority
    action_label: Optional[str] = None


NOTIFICATION_TEMPLATES: dict[str, NotificationTemplate] = {
    "EVALUATION_ASSIGNED": NotificationTemplate(
        title="Nueva Evaluación Asignada",
        message="Se te ha asignado una evaluación de desempeño para {{employeeName}}. Fecha límite: {{dueDate}}",
        category="evaluation",
        type=NotificationType.INFO,
        priority=Priority.HIGH,
        action_label="Completar Evaluación",
    ),
    "EVALUATION_SUBMITTED": NotificationTemplate(
        title="Evaluación Enviada",
        message="{{evaluatorName}} ha completado tu evaluación de desempeño.",
        category="evaluation",
        type=NotificationType.INFO,
        priority=Priority.NORMAL,
        action_label="Ver Resultados",
    ),
    "EVALUATION_DUE_SOON": NotificationTemplate(
        title="Evaluación Próxima a Vencer",
        message="La evaluación de {{employeeName}} vence en {{daysLeft}} días.",
        category="evaluation",
        type=NotificationType.WARNING,
        priority=Priority.HIGH,
        action_label="Completar Ahora",
    ),
    "EVALUATION_APPROVED": NotificationTemplate(
        title="Evaluación Aprobada",
        message="Tu evaluación de desempeño ha sido aprobada por {{approverName}}. Puntuación final: {{score}}",
        category="evaluation",
        type=NotificationType.SUCCESS,
        priority=Priority.HIGH,
        action_label="Ver Resultados",
    ),
    "PAYROLL_GENERATED": NotificationTemplate(
        title="Recibo de Sueldo Disponible",
        message="Tu recibo de sueldo del período {{period}} está disponible.",
        category="payroll",
        type=NotificationType.INFO,
        priority=Priority.HIGH,
        action_label="Ver Recibo",
    ),
    "SYSTEM_ANNOUNCEMENT": NotificationTemplate(
        title="{{title}}",
        message="{{message}}",
        category="system",
        type=NotificationType.INFO,
        priority=Priority.NORMAL,
    ),
    "WORKFLOW_STEP_ASSIGNED": NotificationTemplate(
        title="Nueva Tarea Asignada",
        message='Se te ha asignado la tarea "{{stepName}}" en el proceso "{{workflowName}}".',
        category="workflow",
        type=NotificationType.INFO,
        priority=Priority.HIGH,
        action_label="Ver Tarea",
    ),
    "WORKFLOW_COMPLETED": NotificationTemplate(
        title="Proceso Completado",
        message='El proceso "{{workflowName}}" ha sido completado exitosamente.',
        category="workflow",
        type=NotificationType.SUCCESS,
        priority=Priority.NORMAL,
    ),
    "WORKFLOW_REJECTED": NotificationTemplate(
        title="Proceso Rechazado",
        message='El proceso "{{workflowName}}" ha sido rechazado en el paso "{{stepName}}". Motivo: {{reason}}',
        category="workflow",
        type=NotificationType.WARNING,
        priority=Priority.HIGH,
    ),
}


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_template(text: str, variables: Optional[Mapping[str, Any]]) -> str:
    """Replace every ``{{name}}`` with its variable; unknown placeholders stay as they are."""
    for key, value in (variables or {}).items():
        text = text.replace("{{" + key + "}}", _to_text(value))
    return text
