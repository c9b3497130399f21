# billing_core/metrics.py
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from .totals import calculate_invoice_total, field_value

logger = logging.getLogger(__name__)

PAID_STATUSES = frozenset({'PAID'})
PENDING_STATUSES = frozenset({'SENT', 'UNPAID', 'OVERDUE'})
# DRAFT, CANCELLED and UNCOLLECTIBLE never count towards money figures,
# and neither does any status outside the known set.


@dataclass
class DashboardMetrics:
    total_received_amount: float = 0.0
    total_pending_amount: float = 0.0
    total_overdue_amount: float = 0.0
    unpaid_client_count: int = 0

    def to_dict(self):
        return {
            'totalReceivedAmount': self.total_received_amount,
            'totalPendingAmount': self.total_pending_amount,
            'totalOverdueAmount': self.total_overdue_amount,
            'unpaidClientCount': self.unpaid_client_count,
        }


def normalize_status(status):
    return str(status or '').strip().upper()


def classify_status(status):
    """Return ``'received'``, ``'pending'`` or ``None`` for a status string."""
    status = normalize_status(status)
    if status in PAID_STATUSES:
        return 'received'
    if status in PENDING_STATUSES:
        return 'pending'
    return None


def as_utc(value):
    """Normalise a date or datetime to an aware UTC datetime.

    Plain dates become midnight UTC of that day; naive datetimes are
    assumed to be UTC already.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            logger.warning("Ignoring unparsable due date %r", value)
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return None


def is_overdue(due_date, now):
    due = as_utc(due_date)
    return due is not None and due < now


def aggregate_metrics(invoices, now=None):
    """Bucket invoice totals by status for the dashboard.

    ``invoices`` are invoice rows or invoice-like mappings; each needs a
    status, a client id, an optional due date and the fields read by the
    total calculator.
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    metrics = DashboardMetrics()
    unpaid_clients = set()

    for invoice in invoices:
        bucket = classify_status(field_value(invoice, 'status'))
        if bucket is None:
            continue
        total = calculate_invoice_total(invoice)
        if bucket == 'received':
            metrics.total_received_amount += total
            continue
        metrics.total_pending_amount += total
        unpaid_clients.add(field_value(invoice, 'client_id', 'clientId'))
        if is_overdue(field_value(invoice, 'due_date', 'dueDate'), now):
            metrics.total_overdue_amount += total

    metrics.unpaid_client_count = len(unpaid_clients)
    return metrics
