"""Admin audit trail: one row per admin state transition."""
import json
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select

from repurpose.core.database import admin_audit, get_db_session
from repurpose.core.logging import _safe_truncate


def record_admin_audit(
    actor: str,
    action: str,
    target_user_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Record an admin action in the audit log.

    Args:
        actor: Credential identifier ("key:<hash>"), never the key itself
        action: Action name ("upgrade", "downgrade", "reset_usage")
        target_user_id: Account affected by the action
        payload: Additional context (values truncated, JSON-serialized)
    """
    payload_json = None
    if payload:
        payload_json = json.dumps({k: _safe_truncate(v) for k, v in payload.items()})
    with get_db_session() as session:
        session.execute(
            insert(admin_audit).values(
                actor=actor,
                action=action,
                target_user_id=target_user_id,
                payload_json=payload_json,
            )
        )


def list_admin_audit(target_user_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
    query = select(admin_audit).order_by(admin_audit.c.id.desc()).limit(limit)
    if target_user_id:
        query = query.where(admin_audit.c.target_user_id == target_user_id)
    with get_db_session() as session:
        rows = session.execute(query).fetchall()
    return [
        {
            "actor": r.actor,
            "action": r.action,
            "target_user_id": r.target_user_id,
            "payload": json.loads(r.payload_json) if r.payload_json else None,
            "created_at": r.created_at,
        }
        for r in rows
    ]
