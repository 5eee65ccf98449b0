"""
Audit trail for administrative actions.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from siteadmin.models import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int],
    description: str,
) -> AuditLog:
    """
    Record an administrative action.

    Joins the caller's transaction: the entry is committed (or rolled back)
    together with the change it documents.
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
    )
    db.add(entry)
    logger.debug(f"Audit {action} {entity_type}#{entity_id} by actor {actor_id}")

    # Don't commit here - let the caller handle the transaction
    return entry
