"""Signals and signal handlers for drive app."""

import logging
from typing import Any

from django.dispatch import Signal, receiver

from cloudbox.apps.drive.models import AuditLog

logger = logging.getLogger(__name__)

# Sent after an admin soft-deletes or restores a user's folder or file.
# Keyword arguments: actor_id, actor_email, action_type, target_type,
# target_id, target_name, before, after.
admin_action_performed = Signal()


@receiver(admin_action_performed)
def record_audit_log(
    sender: Any,
    actor_id: Any,
    actor_email: str,
    action_type: str,
    target_type: str,
    target_id: Any,
    target_name: str,
    before: dict[str, Any],
    after: dict[str, Any],
    **kwargs: object,
) -> AuditLog:
    """Write an audit log entry for an admin action.

    Args:
        sender: Module that performed the action.
        actor_id: Admin user ID.
        actor_email: Admin email.
        action_type: e.g. 'folder_admin_delete'.
        target_type: 'folder' or 'file'.
        target_id: ID of the affected item.
        target_name: Name of the affected item.
        before: Item state before the action.
        after: Item state after the action.
        **kwargs: Additional signal arguments.

    Returns:
        Created AuditLog entry.
    """
    entry = AuditLog.objects.create(
        actor_id=str(actor_id),
        actor_email=actor_email,
        action_type=action_type,
        target_type=target_type,
        target_id=str(target_id),
        target_name=target_name,
        metadata={'before': before, 'after': after},
    )
    logger.info(
        'Audit: %s %s %s by %s',
        action_type,
        target_type,
        target_id,
        actor_email or actor_id,
    )
    return entry
