from sqlalchemy.orm import Session
from qrdine.models.core import AuditLog

def audit(db: Session, actor_user_id: str | None, entity: str, entity_id: str,
          action: str, before: dict | None = None, after: dict | None = None, reason: str | None = None):
    """Stage an audit row in ``db``; it commits with the change it describes."""
    entry = AuditLog(
        actor_user_id=actor_user_id,
        entity=entity, entity_id=entity_id,
        action=action,
        reason=reason,
        before=before or None,
        after=after or None,
    )
    db.add(entry)
    return entry
