# billing_core/services.py
"""Ownership-checked data access used by both the JSON API and the pages."""
import logging
import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone

from sqlalchemy import func, select

from billing_core import db
from .errors import AuthorizationError, NotFoundError, ValidationError
from .jsonfields import dump_json_object
from .metrics import aggregate_metrics
from .models import Client, Invoice, User
from .totals import line_item_from_raw, serialize_line_items

logger = logging.getLogger(__name__)

CLIENT_FIELDS = (
    'full_name', 'email', 'phone_number', 'billing_address', 'trade_name', 'pan_number', 'gstin',
)
INVOICE_FIELDS = (
    'client_id', 'reference_name', 'invoice_date', 'due_date', 'status',
    'discount', 'tax_rate', 'previous_dues', 'notes',
)
PROFILE_FIELDS = (
    'email', 'company_name', 'company_logo_url', 'company_address', 'contact_phone',
    'contact_website', 'tax_pan_number', 'tax_gstin',
)

ID_PATTERN = re.compile(r'[0-9]+', re.ASCII)


def parse_id(raw):
    if raw is None or not ID_PATTERN.fullmatch(str(raw)):
        raise ValidationError('Invalid ID')
    return int(raw)


# ========================
# Clients
# ========================

def list_clients(user):
    stmt = (
        select(Client)
        .where(Client.user_id == user.id)
        .order_by(Client.created_at.desc(), Client.id.desc())
    )
    return db.session.execute(stmt).scalars().all()


def get_owned_client(user, client_id):
    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError('Client not found')
    if client.user_id != user.id:
        raise AuthorizationError('Forbidden')
    return client


def create_client(user, **fields):
    client = Client(user_id=user.id, **{k: fields.get(k) for k in CLIENT_FIELDS})
    db.session.add(client)
    db.session.commit()
    return client


def update_client(client, **fields):
    for name in CLIENT_FIELDS:
        if name in fields:
            setattr(client, name, fields[name])
    db.session.commit()
    return client


def delete_client(client):
    # Invoices go through the ORM cascade; both deletes share one commit.
    invoice_count = len(client.invoices)
    db.session.delete(client)
    db.session.commit()
    logger.info("Deleted client %s with %d invoice(s)", client.id, invoice_count)


# ========================
# Invoices
# ========================

def clean_line_items(raw):
    """Validate submitted line items and normalise them for storage."""
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError('lineItems must be a list')
    items = []
    for position, entry in enumerate(raw, start=1):
        if not isinstance(entry, Mapping):
            raise ValidationError(f'Line item {position} must be an object')
        for key in ('quantity', 'rate'):
            value = entry.get(key)
            if value is None or value == '':
                continue
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ValidationError(f'Line item {position}: {key} must be a number')
            if isinstance(value, bool) or math.isnan(number) or number < 0:
                raise ValidationError(f'Line item {position}: {key} must be zero or positive')
        items.append(line_item_from_raw(entry))
    return items


def owned_invoices_query(user):
    return select(Invoice).join(Client).where(Client.user_id == user.id)


def list_invoices(user):
    stmt = owned_invoices_query(user).order_by(Invoice.created_at.desc(), Invoice.id.desc())
    return db.session.execute(stmt).scalars().all()


def get_owned_invoice(user, invoice_id):
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError('Invoice not found')
    if invoice.client is None or invoice.client.user_id != user.id:
        raise AuthorizationError('Forbidden')
    return invoice


def next_invoice_number(user, now=None):
    """``INV-{year}-{sequence:04d}``, counted per user per calendar year."""
    now = now or datetime.now(timezone.utc)
    start = datetime(now.year, 1, 1, tzinfo=timezone.utc)
    end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    stmt = (
        select(func.count(Invoice.id))
        .join(Client)
        .where(Client.user_id == user.id, Invoice.created_at >= start, Invoice.created_at < end)
    )
    count = db.session.execute(stmt).scalar() or 0
    return f"INV-{now.year}-{count + 1:04d}"


def _apply_invoice_fields(invoice, user, fields, line_items):
    if 'client_id' in fields:
        invoice.client = get_owned_client(user, fields['client_id'])
    for name in INVOICE_FIELDS:
        if name != 'client_id' and name in fields:
            setattr(invoice, name, fields[name])
    for name in ('discount', 'tax_rate', 'previous_dues'):
        if getattr(invoice, name) is None:
            setattr(invoice, name, 0.0)
    if line_items is not None:
        invoice.line_items = serialize_line_items(line_items)


def create_invoice(user, line_items=None, now=None, **fields):
    invoice = Invoice(invoice_number=next_invoice_number(user, now), line_items='[]')
    _apply_invoice_fields(invoice, user, fields, line_items or [])
    if now is not None:
        invoice.created_at = now
    db.session.add(invoice)
    db.session.commit()
    logger.info("Created invoice %s for user %s", invoice.invoice_number, user.id)
    return invoice


def update_invoice(user, invoice, line_items=None, **fields):
    _apply_invoice_fields(invoice, user, fields, line_items)
    db.session.commit()
    return invoice


def delete_invoice(invoice):
    db.session.delete(invoice)
    db.session.commit()


# ========================
# Metrics & Preview
# ========================

def user_metrics(user, now=None):
    invoices = db.session.execute(owned_invoices_query(user)).scalars().all()
    return aggregate_metrics(invoices, now=now)


def update_profile(user, payment_details=None, item_table_headers=None, **fields):
    for name in PROFILE_FIELDS:
        if name in fields:
            setattr(user, name, fields[name])
    if payment_details is not None:
        user.payment_details = dump_json_object(payment_details)
    if item_table_headers is not None:
        user.item_table_headers = dump_json_object(item_table_headers)
    db.session.commit()
    return user


def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('User profile not found')
    return user
