"""
Audit logging service for order, cart and payment actions.

Entries are written after the business transaction has committed, in their
own small transaction. A failing audit write is logged and dropped; it never
reaches the caller.
"""
from pharmastore.models.audit_log import AuditLog, AuditAction
from flask import request, g, has_request_context
from sqlalchemy.orm import Session
import json
import logging

logger = logging.getLogger(__name__)


def log_action(
    session: Session,
    action: AuditAction,
    resource_type: str = None,
    resource_id: int = None,
    details: dict = None,
    pharmacy_id: int = None,
    user_id: int = None
):
    """
    Record an auditable action and commit it.

    Args:
        session: Database session (no pending business changes expected)
        action: AuditAction enum value
        resource_type: Type of resource affected (e.g., 'order', 'payment')
        resource_id: ID of the affected resource
        details: Dict with additional details (JSON encoded)
        pharmacy_id: Owning pharmacy; defaults to g.pharmacy_id
        user_id: Acting user; defaults to g.user, None for provider callbacks
    """
    try:
        ip_address = None
        user_agent = None
        if has_request_context():
            if pharmacy_id is None:
                pharmacy_id = g.get('pharmacy_id')
            if user_id is None and g.get('user') is not None:
                user_id = g.user.id
            ip_address = request.remote_addr
            user_agent = (request.headers.get('User-Agent') or '')[:255]

        if not pharmacy_id:
            logger.warning(f"Cannot log action {action.value}: missing pharmacy_id")
            return None

        entry = AuditLog(
            pharmacy_id=pharmacy_id,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=json.dumps(details, default=str) if details else None,
            ip_address=ip_address,
            user_agent=user_agent
        )
        session.add(entry)
        session.commit()

        logger.info(f"Audit: {action.value} by user {user_id} on {resource_type} {resource_id}")
        return entry

    except Exception as e:
        session.rollback()
        logger.error(f"Failed to create audit log for {action.value}: {e}")
        return None


def get_audit_logs(
    session: Session,
    pharmacy_id: int,
    limit: int = 100,
    offset: int = 0,
    action_filter: AuditAction = None,
    resource_type_filter: str = None,
    resource_id_filter: int = None
):
    """Audit entries of a pharmacy, newest first."""
    query = session.query(AuditLog).filter(AuditLog.pharmacy_id == pharmacy_id)

    if action_filter:
        query = query.filter(AuditLog.action == action_filter)
    if resource_type_filter:
        query = query.filter(AuditLog.resource_type == resource_type_filter)
    if resource_id_filter:
        query = query.filter(AuditLog.resource_id == resource_id_filter)

    return query.order_by(AuditLog.id.desc()).limit(limit).offset(offset).all()
