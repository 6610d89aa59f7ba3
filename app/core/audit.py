from sqlalchemy.orm import Session
from typing import Any

from app.core.security import Caller
from app.models.audit_event import AuditEvent


def log_event(
    *,
    db: Session,
    actor: Caller | None,
    action: str,
    entity_type: str,
    entity_id: int,
    metadata: dict[str, Any] | None = None,
):
    event = AuditEvent(
        actor_user_id=actor.id if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
    )
    db.add(event)
