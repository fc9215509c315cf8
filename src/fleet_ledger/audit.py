"""Builders for audit entries, notifications, and reducer-issued identifiers.

Audit entries are the durable, attributed history of every financial
transition; notifications are ephemeral user-facing messages. Both receive
identifiers from :class:`IdSequence`, which is seeded from
``LedgerState.sequence`` so that replaying the same actions yields the same
identifiers.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .constants import EntityType, NotificationType
from .models import AuditLog, Notification, SystemUser


class IdSequence:
    """Counter handing out prefixed identifiers during one reduction."""

    def __init__(self, start: int) -> None:
        self.value = start

    def next(self, prefix: str) -> str:
        self.value += 1
        return f"{prefix}_{self.value:06d}"


def format_inr(amount: Decimal) -> str:
    """Format an amount as whole rupees with Indian digit grouping.

    Args:
        amount (Decimal): Amount to render.

    Returns:
        str: Text such as ``"₹1,00,000"``; lakh and crore groups follow the
            first group of three digits.
    """

    whole = int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if whole < 0 else ""
    digits = str(abs(whole))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return f"{sign}₹{digits}"


def build_audit_entry(
    user: SystemUser,
    ids: IdSequence,
    *,
    action: str,
    entity_type: EntityType,
    entity_id: str,
    details: str,
    timestamp: datetime,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
) -> AuditLog:
    """Create an audit entry attributed to ``user``.

    Args:
        user (SystemUser): Acting user captured at the moment of the change.
        ids (IdSequence): Identifier source for the current reduction.
        action (str): Verb describing the change (``Create``, ``Record`` ...).
        entity_type (EntityType): Family of the affected record.
        entity_id (str): Human-facing identifier of the affected record.
        details (str): Free-text summary of the change.
        timestamp (datetime): Time the triggering action was issued.
        old_value (str | None): Value before the change, when meaningful.
        new_value (str | None): Value after the change, when meaningful.

    Returns:
        AuditLog: Immutable entry ready to be prepended to the history.
    """

    return AuditLog(
        log_id=ids.next("log"),
        timestamp=timestamp,
        user_id=user.user_id,
        user_name=user.name,
        user_role=user.role,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        old_value=old_value,
        new_value=new_value,
    )


def build_notification(ids: IdSequence, message: str, type_: NotificationType) -> Notification:
    return Notification(notification_id=ids.next("n"), message=message, type=type_)


def reminder_note(timestamp: datetime) -> str:
    """Note line appended to an invoice when a payment reminder goes out."""

    return f"Reminder Sent: {timestamp:%d/%m/%Y} {timestamp:%H:%M:%S}"


__all__ = [
    "IdSequence",
    "format_inr",
    "build_audit_entry",
    "build_notification",
    "reminder_note",
]
