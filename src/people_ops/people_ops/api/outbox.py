from __future__ import annotations

from flask import Flask, jsonify

from ..container import Container
from .auth import current_identity, permission_required


def register(app: Flask, container: Container) -> None:
    """Operator view of event deliveries that failed, scoped to the caller's tenant."""
    can_read = permission_required(container, "settings.read")
    can_manage = permission_required(container, "settings.manage")

    @app.route("/events/failed", methods=["GET"], endpoint="events_failed")
    @can_read
    def list_failed():
        tenant_id = current_identity().tenant_id
        failed = [f.to_dict() for f in container.outbox.failed if f.event.tenant_id == tenant_id]
        return jsonify({"failed": failed, "total": len(failed)})

    @app.route("/events/failed/retry", methods=["POST"], endpoint="events_failed_retry")
    @can_manage
    def retry_failed():
        tenant_id = current_identity().tenant_id
        still_failing = container.outbox.retry_failed(tenant_id)
        return jsonify({"stillFailing": still_failing})
