# app/audit_service.py

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.audit_logs import AuditLog

logger = logging.getLogger(__name__)


def record_admin_action(
    db: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: Any,
    admin: Optional[Any] = None,
    details: Optional[dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """
    Writes an audit row in its own commit, after the action it records has
    been committed. A failure here is logged and never undoes the action.
    """
    try:
        row = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            admin_id=getattr(admin, "id", None),
            admin_email=getattr(admin, "email", None),
            details=details or None,
        )
        db.add(row)
        db.commit()
        return row
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(
            "Audit log write failed action=%s entity=%s:%s: %s",
            action,
            entity_type,
            entity_id,
            str(e),
        )
        return None
