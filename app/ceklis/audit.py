import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.ceklis.models import AuditEvent, User


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity: Any = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append an audit event to the session (the caller commits).

    ``entity`` is a mapped instance; its class name and id fill in
    ``entity_type`` / ``entity_id`` when those are not given. Request id and
    client IP are taken from the current request, if there is one.
    """
    if entity is not None:
        entity_type = entity_type or type(entity).__name__
        entity_id = entity_id or str(entity.id)

    in_request = has_request_context()
    ev = AuditEvent(
        request_id=request_id or (getattr(g, "request_id", None) if in_request else None),
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=request.remote_addr if in_request else None,
    )
    s.add(ev)
    return ev
