"""
Notification Emitter.

Records a human-readable event for a recipient after a state transition has
committed. Emission is best effort: a failure is logged and dropped, it never
propagates into (or rolls back) the transition that triggered it.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from .config import config
from .logging import logger
from .store import LedgerStore, TransactionCancelled, Update


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class NotificationEmitter:

    def __init__(self, store: LedgerStore):
        self.store = store
        self.table = config.NOTIFICATIONS_TABLE

    def emit(self, to_email: str, message: str, action_route: str) -> bool:
        """Append a notification for ``to_email``. Returns False if it could not be recorded."""
        try:
            self.store.put(self.table, {
                'notificationId': str(uuid.uuid4()),
                'toEmail': to_email,
                'message': message,
                'actionRoute': action_route,
                'time': utc_now(),
                'read': False,
            })
            return True
        except Exception as e:
            logger.warning(f"Notification to {to_email} dropped (non-critical): {e}")
            return False

    def emit_many(self, recipients: Iterable[str], message: str, action_route: str) -> int:
        """Emit the same notification to several recipients; returns how many were recorded."""
        sent = 0
        try:
            for to_email in recipients:
                if self.emit(to_email, message, action_route):
                    sent += 1
        except Exception as e:
            logger.warning(f"Could not resolve notification recipients (non-critical): {e}")
        return sent

    def list_for(self, email: str) -> List[Dict[str, Any]]:
        """Notifications for a recipient, newest first."""
        return list(self.store.query(self.table, 'RecipientIndex', email, descending=True))

    def mark_read(self, email: str) -> int:
        marked = 0
        for notification in self.list_for(email):
            if notification.get('read'):
                continue
            try:
                self.store.update(Update(
                    self.table,
                    self.store.key_for(self.table, notification['notificationId']),
                    sets={'read': True}
                ))
            except TransactionCancelled:
                continue  # cleared concurrently
            marked += 1
        return marked

    def clear(self, email: str) -> int:
        """Delete every notification of a recipient; returns how many were removed."""
        removed = 0
        for notification in self.list_for(email):
            try:
                self.store.delete(self.table, self.store.key_for(self.table, notification['notificationId']))
            except TransactionCancelled:
                continue
            removed += 1
        return removed
