# billing_core/models.py

from datetime import datetime, timezone
from enum import Enum as PyEnum

from flask_login import UserMixin
# Use shared db instance
from billing_core import db
from .jsonfields import parse_json_object
from .totals import invoice_totals, parse_line_items


def utcnow():
    return datetime.now(timezone.utc)


def iso_or_none(value):
    return value.isoformat() if value is not None else None


class InvoiceStatus(PyEnum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    UNPAID = "UNPAID"
    OVERDUE = "OVERDUE"
    PAID = "PAID"
    UNCOLLECTIBLE = "UNCOLLECTIBLE"
    CANCELLED = "CANCELLED"


class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(120))
    company_name = db.Column(db.String(200))
    company_logo_url = db.Column(db.String(500))
    company_address = db.Column(db.Text)
    contact_phone = db.Column(db.String(30))
    contact_website = db.Column(db.String(255))
    tax_pan_number = db.Column(db.String(20))
    tax_gstin = db.Column(db.String(20))
    payment_details = db.Column(db.Text)      # serialized JSON object
    item_table_headers = db.Column(db.Text)   # serialized JSON object
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    clients = db.relationship('Client', back_populates='user', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<User {self.username}>"

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'createdAt': iso_or_none(self.created_at),
        }

    def profile_dict(self):
        return {
            'username': self.username,
            'email': self.email,
            'companyName': self.company_name,
            'companyLogoUrl': self.company_logo_url,
            'companyAddress': self.company_address,
            'contactPhone': self.contact_phone,
            'contactWebsite': self.contact_website,
            'taxPanNumber': self.tax_pan_number,
            'taxGstin': self.tax_gstin,
            'paymentDetails': parse_json_object(self.payment_details, "payment details"),
            'itemTableHeaders': parse_json_object(self.item_table_headers, "item table headers"),
        }


class Client(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(120))
    phone_number = db.Column(db.String(30))
    billing_address = db.Column(db.Text)
    trade_name = db.Column(db.String(200))
    pan_number = db.Column(db.String(20))
    gstin = db.Column(db.String(20))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = db.relationship('User', back_populates='clients')
    # Deleting a client takes its invoices with it in the same flush.
    invoices = db.relationship('Invoice', back_populates='client', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Client {self.full_name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'fullName': self.full_name,
            'email': self.email,
            'phoneNumber': self.phone_number,
            'billingAddress': self.billing_address,
            'tradeName': self.trade_name,
            'panNumber': self.pan_number,
            'gstin': self.gstin,
            'createdAt': iso_or_none(self.created_at),
        }


class Invoice(db.Model):
    __tablename__ = 'invoice'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('client.id'), nullable=False, index=True)
    invoice_number = db.Column(db.String(30), nullable=False)  # unique per user, not globally
    reference_name = db.Column(db.String(200))
    invoice_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), default=InvoiceStatus.DRAFT.value, nullable=False)
    line_items = db.Column(db.Text, default='[]', nullable=False)  # serialized JSON list
    discount = db.Column(db.Float, default=0.0)
    tax_rate = db.Column(db.Float, default=0.0)
    previous_dues = db.Column(db.Float, default=0.0)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    client = db.relationship('Client', back_populates='invoices')

    def __repr__(self):
        return f"<Invoice {self.invoice_number} | {self.status}>"

    @property
    def totals(self):
        # Never stored: recomputed on every read.
        return invoice_totals(self)

    @property
    def total_amount(self):
        return self.totals.total

    def to_dict(self, include_client=False):
        totals = self.totals
        data = {
            'id': self.id,
            'clientId': self.client_id,
            'invoiceNumber': self.invoice_number,
            'referenceName': self.reference_name,
            'invoiceDate': iso_or_none(self.invoice_date),
            'dueDate': iso_or_none(self.due_date),
            'status': self.status,
            'lineItems': [item.to_dict() for item in parse_line_items(self.line_items)],
            'discount': self.discount or 0.0,
            'taxRate': self.tax_rate or 0.0,
            'previousDues': self.previous_dues or 0.0,
            'notes': self.notes,
            'totals': totals.to_dict(),
            'totalAmount': totals.total,
            'createdAt': iso_or_none(self.created_at),
            'updatedAt': iso_or_none(self.updated_at),
        }
        if include_client and self.client is not None:
            data['client'] = self.client.to_dict()
        return data
