# forms.py

import re

from flask_wtf import FlaskForm
from wtforms import (
    StringField, PasswordField, SubmitField, IntegerField,
    FloatField, TextAreaField, SelectField, DateField,
)
from wtforms.validators import DataRequired, InputRequired, Optional, NumberRange, Length, Email
from werkzeug.datastructures import MultiDict

from flask_babel import lazy_gettext as _
from billing_core import InvoiceStatus

DATE_FORMATS = ['%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ']

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def to_snake_case(name):
    return _CAMEL_BOUNDARY.sub('_', name).lower()


def json_formdata(payload):
    """Flatten a JSON body into form data keyed by snake_case field names.

    Nested lists and objects are left out; the caller handles those
    (line items, payment details, table headers).
    """
    formdata = MultiDict()
    if not isinstance(payload, dict):
        return formdata
    for key, value in payload.items():
        if value is None or isinstance(value, (dict, list, tuple)):
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        formdata.add(to_snake_case(key), str(value))
    return formdata


def api_form(form_class, payload):
    """Bind a JSON payload to a form with CSRF disabled."""
    return form_class(formdata=json_formdata(payload), meta={'csrf': False})


def first_error(form):
    for field_name, errors in form.errors.items():
        if errors:
            field = getattr(form, field_name, None)
            label = field.label.text if field is not None else field_name
            return f"{label}: {errors[0]}"
    return str(_('Invalid request'))


def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value


def _strip(value):
    return value.strip() if isinstance(value, str) else value


# -------------------
# Authentication Forms
# -------------------
class LoginForm(FlaskForm):
    username = StringField(_("Username"), validators=[DataRequired()], filters=[_strip])
    password = PasswordField(_("Password"), validators=[DataRequired()])
    submit = SubmitField(_("Login"))


class RegisterForm(FlaskForm):
    username = StringField(_("Username"), validators=[DataRequired(), Length(max=100)], filters=[_strip])
    password = PasswordField(_("Password"), validators=[DataRequired()])
    email = StringField(_("Email"), validators=[Optional(), Email()], filters=[_strip])
    submit = SubmitField(_("Register"))


# -------------------
# CRUD Forms
# -------------------
class ClientForm(FlaskForm):
    full_name = StringField(_("Full Name"), validators=[DataRequired(), Length(max=200)], filters=[_strip])
    email = StringField(_("Email"), validators=[Optional(), Email()], filters=[_strip])
    phone_number = StringField(_("Phone"), validators=[Optional(), Length(max=30)])
    billing_address = TextAreaField(_("Billing Address"), validators=[Optional()])
    trade_name = StringField(_("Trade Name"), validators=[Optional(), Length(max=200)])
    pan_number = StringField(_("PAN"), validators=[Optional(), Length(max=20)])
    gstin = StringField(_("GSTIN"), validators=[Optional(), Length(max=20)])
    submit = SubmitField(_("Save Client"))


class InvoiceForm(FlaskForm):
    client_id = IntegerField(_("Client"), validators=[InputRequired()])
    reference_name = StringField(_("Reference"), validators=[Optional(), Length(max=200)])
    invoice_date = DateField(_("Invoice Date"), format=DATE_FORMATS, validators=[InputRequired()])
    due_date = DateField(_("Due Date"), format=DATE_FORMATS, validators=[Optional()])
    status = SelectField(
        _("Status"),
        choices=[(status.value, status.value.title()) for status in InvoiceStatus],
        default=InvoiceStatus.DRAFT.value,
        filters=[_upper],
    )
    discount = FloatField(_("Discount (%)"), default=0.0, validators=[Optional(), NumberRange(min=0, max=100)])
    tax_rate = FloatField(_("Tax Rate (%)"), default=0.0, validators=[Optional(), NumberRange(min=0, max=100)])
    previous_dues = FloatField(_("Previous Dues"), default=0.0, validators=[Optional(), NumberRange(min=0)])
    notes = TextAreaField(_("Notes"), validators=[Optional()])
    submit = SubmitField(_("Save Invoice"))


class ProfileForm(FlaskForm):
    email = StringField(_("Email"), validators=[Optional(), Email()], filters=[_strip])
    company_name = StringField(_("Company Name"), validators=[Optional(), Length(max=200)])
    company_logo_url = StringField(_("Logo URL"), validators=[Optional(), Length(max=500)])
    company_address = TextAreaField(_("Company Address"), validators=[Optional()])
    contact_phone = StringField(_("Phone"), validators=[Optional(), Length(max=30)])
    contact_website = StringField(_("Website"), validators=[Optional(), Length(max=255)])
    tax_pan_number = StringField(_("PAN"), validators=[Optional(), Length(max=20)])
    tax_gstin = StringField(_("GSTIN"), validators=[Optional(), Length(max=20)])
    submit = SubmitField(_("Save Profile"))
