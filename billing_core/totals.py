# billing_core/totals.py
"""Invoice total computation.

Every place that shows an invoice amount (list views, dashboard metrics,
preview payloads, PDF rendering) goes through :func:`compute_totals` so the
numbers agree everywhere. Arithmetic is plain float with no intermediate
rounding; rounding to two places happens only when formatting for display.
"""
import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    description: str = ''
    hsn_code: str = ''
    quantity: float = 0.0
    rate: float = 0.0

    @property
    def amount(self):
        return self.quantity * self.rate

    def to_dict(self):
        return {
            'description': self.description,
            'hsnCode': self.hsn_code,
            'quantity': self.quantity,
            'rate': self.rate,
        }


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: float
    discount_amount: float
    subtotal_after_discount: float
    tax_amount: float
    previous_dues: float
    total: float

    def to_dict(self):
        return {
            'subtotal': self.subtotal,
            'discountAmount': self.discount_amount,
            'subtotalAfterDiscount': self.subtotal_after_discount,
            'taxAmount': self.tax_amount,
            'previousDues': self.previous_dues,
            'total': self.total,
        }


def to_number(value, default=0.0):
    """Coerce ``value`` to a float, falling back to ``default``.

    ``None``, booleans, blank or non-numeric strings and NaN all count as
    missing.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number):
        return default
    return number


def field_value(record, *names, default=None):
    """Read the first present attribute or key out of ``names``.

    Lets the calculator accept ORM rows, API payloads (camelCase) and
    plain dicts (snake_case) alike.
    """
    if record is None:
        return default
    for name in names:
        if isinstance(record, Mapping):
            if name in record and record[name] is not None:
                return record[name]
        else:
            value = getattr(record, name, None)
            if value is not None:
                return value
    return default


def _text(value):
    if value is None:
        return ''
    return value if isinstance(value, str) else str(value)


def line_item_from_raw(raw):
    if isinstance(raw, LineItem):
        return raw
    if not isinstance(raw, Mapping):
        return LineItem()
    return LineItem(
        description=_text(raw.get('description')),
        hsn_code=_text(field_value(raw, 'hsnCode', 'hsn_code', default='')),
        quantity=to_number(raw.get('quantity')),
        rate=to_number(raw.get('rate')),
    )


def parse_line_items(raw):
    """Turn stored or submitted line items into a list of :class:`LineItem`.

    Accepts the serialized JSON text kept in the database, an already
    decoded list, or ``None``. Anything that does not decode to a list
    yields an empty list.
    """
    if raw is None or raw == '':
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Unparsable line items, treating as empty: %s", e)
            return []
    if not isinstance(raw, (list, tuple)):
        return []
    return [line_item_from_raw(item) for item in raw]


def serialize_line_items(items):
    return json.dumps([line_item_from_raw(item).to_dict() for item in items])


def calculate_subtotal(line_items):
    subtotal = 0.0
    for item in line_items:
        item = line_item_from_raw(item)
        subtotal += item.quantity * item.rate
    return subtotal


def compute_totals(line_items, discount=0, tax_rate=0, previous_dues=0):
    """Subtotal, then discount, then tax on the discounted amount, then dues.

    The order is fixed. Discount and tax rates are percentages and are not
    clamped here.
    """
    if line_items is None or isinstance(line_items, (str, bytes)):
        line_items = parse_line_items(line_items)
    subtotal = calculate_subtotal(line_items)
    discount_amount = subtotal * (to_number(discount) / 100)
    subtotal_after_discount = subtotal - discount_amount
    tax_amount = subtotal_after_discount * (to_number(tax_rate) / 100)
    dues = to_number(previous_dues)
    total = subtotal_after_discount + tax_amount + dues
    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        subtotal_after_discount=subtotal_after_discount,
        tax_amount=tax_amount,
        previous_dues=dues,
        total=total,
    )


def invoice_totals(invoice):
    """Totals breakdown for an invoice row or an invoice-like mapping."""
    return compute_totals(
        parse_line_items(field_value(invoice, 'line_items', 'lineItems')),
        discount=field_value(invoice, 'discount', default=0),
        tax_rate=field_value(invoice, 'tax_rate', 'taxRate', default=0),
        previous_dues=field_value(invoice, 'previous_dues', 'previousDues', default=0),
    )


def calculate_invoice_total(invoice):
    return invoice_totals(invoice).total


def format_amount(value):
    return f"{to_number(value):.2f}"
