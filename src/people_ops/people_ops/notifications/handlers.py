from __future__ import annotations

import logging

from ..common.events import DomainEvent
from ..core.enums import EvaluationStatus
from .service import NotificationService

logger = logging.getLogger(__name__)


class EvaluationNotifier:
    """Outbox subscribers that turn evaluation events into in-app notifications."""

    def __init__(self, notifications: NotificationService):
        self._notifications = notifications

    def _evaluation_data(self, payload: dict) -> dict:
        return {"evaluationId": payload["evaluation_id"], "cycleId": payload["cycle_id"]}

    def on_assigned(self, event: DomainEvent) -> None:
        payload = event.payload
        due_date = payload.get("due_date")
        self._notifications.create_notification(
            tenant_id=event.tenant_id,
            user_id=payload["evaluator_id"],
            user_name=payload["evaluator_name"],
            template_key="EVALUATION_ASSIGNED",
            variables={
                "employeeName": payload["evaluated_employee_name"],
                "dueDate": due_date.strftime("%d/%m/%Y") if due_date else "-",
            },
            action_url=f"/evaluations/{payload['evaluation_id']}",
            data=self._evaluation_data(payload),
        )

    def on_submitted(self, event: DomainEvent) -> None:
        payload = event.payload
        # A self-evaluation needs no notice to its own author.
        if payload["evaluator_id"] == payload["evaluated_employee_id"]:
            return
        self._notifications.create_notification(
            tenant_id=event.tenant_id,
            user_id=payload["evaluated_employee_id"],
            user_name=payload["evaluated_employee_name"],
            template_key="EVALUATION_SUBMITTED",
            variables={"evaluatorName": payload["evaluator_name"]},
            action_url=f"/evaluations/{payload['evaluation_id']}",
            data=self._evaluation_data(payload),
        )

    def on_reviewed(self, event: DomainEvent) -> None:
        payload = event.payload
        if payload["status"] != EvaluationStatus.COMPLETED.value:
            return
        score = payload.get("overall_rating")
        self._notifications.create_notification(
            tenant_id=event.tenant_id,
            user_id=payload["evaluated_employee_id"],
            user_name=payload["evaluated_employee_name"],
            template_key="EVALUATION_APPROVED",
            variables={"approverName": payload.get("reviewer") or "", "score": score if score is not None else "-"},
            action_url=f"/evaluations/{payload['evaluation_id']}",
            data=self._evaluation_data(payload),
        )
        logger.debug("approval notice queued", extra={"tenant_id": event.tenant_id, "event": event.name})
