# utils/pdf_data.py
import math
from datetime import date, datetime, timezone

from billing_core.jsonfields import parse_json_object
from billing_core.totals import field_value, parse_line_items, to_number

DEFAULT_TABLE_HEADERS = {
    'itemNo': 'NO.',
    'description': 'DESCRIPTION',
    'hsnCode': 'HSN/SAC',
    'quantity': 'QTY',
    'rate': 'RATE',
    'amount': 'AMOUNT',
}

PAYMENT_DETAIL_FIELDS = (
    'accountName',
    'accountNumber',
    'bankName',
    'ifscCode',
    'upiId',
    'gPayNumber',
    'qrCodeUrl',
)


def _text(value, default=''):
    if value is None:
        return default
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value if isinstance(value, str) else str(value)


def _whole_number(value):
    number = to_number(value)
    return int(number) if math.isfinite(number) else 0


def _optional_text(value):
    return None if value is None else _text(value)


def merge_table_headers(raw):
    headers = dict(DEFAULT_TABLE_HEADERS)
    for key, value in parse_json_object(raw, 'item table headers').items():
        if value is not None:
            headers[str(key)] = _text(value)
    return headers


def sanitize_client(client):
    return {
        'fullName': _text(field_value(client, 'fullName', 'full_name'), 'N/A'),
        'email': _text(field_value(client, 'email')),
        'billingAddress': _text(field_value(client, 'billingAddress', 'billing_address')),
        'phoneNumber': _text(field_value(client, 'phoneNumber', 'phone_number')),
        'tradeName': _text(field_value(client, 'tradeName', 'trade_name')),
        'panNumber': _text(field_value(client, 'panNumber', 'pan_number')),
        'gstin': _text(field_value(client, 'gstin')),
    }


def sanitize_invoice(invoice):
    invoice_date = field_value(invoice, 'invoiceDate', 'invoice_date')
    return {
        'id': _whole_number(field_value(invoice, 'id')),
        'invoiceNumber': _text(field_value(invoice, 'invoiceNumber', 'invoice_number'), 'N/A'),
        'referenceName': _text(field_value(invoice, 'referenceName', 'reference_name')),
        'invoiceDate': _text(invoice_date) if invoice_date is not None
        else datetime.now(timezone.utc).isoformat(),
        'dueDate': _optional_text(field_value(invoice, 'dueDate', 'due_date')),
        'status': _text(field_value(invoice, 'status'), 'DRAFT').upper(),
        'notes': _optional_text(field_value(invoice, 'notes')),
        'discount': to_number(field_value(invoice, 'discount')),
        'taxRate': to_number(field_value(invoice, 'taxRate', 'tax_rate')),
        'previousDues': to_number(field_value(invoice, 'previousDues', 'previous_dues')),
        'lineItems': [
            item.to_dict()
            for item in parse_line_items(field_value(invoice, 'lineItems', 'line_items'))
        ],
        'client': sanitize_client(field_value(invoice, 'client')),
    }


def sanitize_user(user):
    payment = parse_json_object(
        field_value(user, 'paymentDetails', 'payment_details'), 'payment details'
    )
    return {
        'companyName': _text(field_value(user, 'companyName', 'company_name'), 'Company Name Not Set'),
        'companyAddress': _text(field_value(user, 'companyAddress', 'company_address')),
        'contactPhone': _text(field_value(user, 'contactPhone', 'contact_phone')),
        'contactWebsite': _text(field_value(user, 'contactWebsite', 'contact_website')),
        'companyLogoUrl': _optional_text(field_value(user, 'companyLogoUrl', 'company_logo_url')),
        'taxPanNumber': _text(field_value(user, 'taxPanNumber', 'tax_pan_number')),
        'taxGstin': _text(field_value(user, 'taxGstin', 'tax_gstin')),
        'email': _text(field_value(user, 'email')),
        'paymentDetails': {name: _text(payment.get(name)) for name in PAYMENT_DETAIL_FIELDS},
        'itemTableHeaders': merge_table_headers(
            field_value(user, 'itemTableHeaders', 'item_table_headers')
        ),
    }


def sanitize_pdf_data(invoice, user):
    """Fill every field the PDF renderer reads with a safe default.

    Both arguments may be ``None`` or partial mappings; serialized
    sub-structures (line items, payment details, table headers) are
    decoded here. Returns ``(sanitized_invoice, sanitized_user)``.
    """
    return sanitize_invoice(invoice), sanitize_user(user)
