# api.py - JSON API (mounted under /api, CSRF-exempt, cookie session)
from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import current_user, login_required

from billing_core import services
from billing_core.auth import authenticate, clear_session_cookie, register_user, set_session_cookie
from billing_core.errors import ValidationError
from billing_core.totals import invoice_totals
from forms import (
    ClientForm, InvoiceForm, LoginForm, ProfileForm, RegisterForm, api_form, first_error,
)
from utils.pdf_data import sanitize_pdf_data
from utils.pdf_generator import generate_invoice_pdf
from utils.storage import UploadRejected, store_upload

api = Blueprint('api', __name__, url_prefix='/api')


def json_payload():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def validated(form_class, payload):
    form = api_form(form_class, payload)
    if not form.validate():
        raise ValidationError(first_error(form))
    return form


def form_fields(form, names):
    return {name: getattr(form, name).data for name in names}


# ========================
# Authentication
# ========================

@api.route('/auth/register', methods=['POST'])
def register():
    payload = json_payload()
    form = api_form(RegisterForm, payload)
    if not form.validate():
        if form.username.errors or form.password.errors:
            raise ValidationError('Username and password are required')
        raise ValidationError(first_error(form))
    user = register_user(form.username.data, form.password.data, form.email.data)
    return jsonify(user.to_dict()), 201


@api.route('/auth/login', methods=['POST'])
def login():
    payload = json_payload()
    form = api_form(LoginForm, payload)
    if not form.validate():
        raise ValidationError('Username and password are required')
    user = authenticate(form.username.data, form.password.data)
    response = jsonify({'message': 'Login successful'})
    return set_session_cookie(response, user)


@api.route('/auth/logout', methods=['POST'])
def logout():
    response = jsonify({'message': 'Logout successful'})
    return clear_session_cookie(response)


# ========================
# Clients
# ========================

@api.route('/clients', methods=['GET'])
@login_required
def list_clients():
    return jsonify([client.to_dict() for client in services.list_clients(current_user)])


@api.route('/clients', methods=['POST'])
@login_required
def create_client():
    form = validated(ClientForm, json_payload())
    client = services.create_client(current_user, **form_fields(form, services.CLIENT_FIELDS))
    return jsonify(client.to_dict()), 201


@api.route('/clients/<client_id>', methods=['GET'])
@login_required
def get_client(client_id):
    client = services.get_owned_client(current_user, services.parse_id(client_id))
    return jsonify(client.to_dict())


@api.route('/clients/<client_id>', methods=['PUT'])
@login_required
def update_client(client_id):
    client = services.get_owned_client(current_user, services.parse_id(client_id))
    form = validated(ClientForm, json_payload())
    client = services.update_client(client, **form_fields(form, services.CLIENT_FIELDS))
    return jsonify(client.to_dict())


@api.route('/clients/<client_id>', methods=['DELETE'])
@login_required
def delete_client(client_id):
    client = services.get_owned_client(current_user, services.parse_id(client_id))
    services.delete_client(client)
    return Response(status=204)


# ========================
# Invoices
# ========================

def _invoice_input():
    payload = json_payload()
    form = validated(InvoiceForm, payload)
    line_items = services.clean_line_items(payload.get('lineItems'))
    return form_fields(form, services.INVOICE_FIELDS), line_items


@api.route('/invoices', methods=['GET'])
@login_required
def list_invoices():
    invoices = services.list_invoices(current_user)
    return jsonify([invoice.to_dict(include_client=True) for invoice in invoices])


@api.route('/invoices', methods=['POST'])
@login_required
def create_invoice():
    fields, line_items = _invoice_input()
    invoice = services.create_invoice(current_user, line_items=line_items, **fields)
    return jsonify(invoice.to_dict(include_client=True)), 201


@api.route('/invoices/<invoice_id>', methods=['GET'])
@login_required
def get_invoice(invoice_id):
    invoice = services.get_owned_invoice(current_user, services.parse_id(invoice_id))
    return jsonify(invoice.to_dict(include_client=True))


@api.route('/invoices/<invoice_id>', methods=['PUT'])
@login_required
def update_invoice(invoice_id):
    invoice = services.get_owned_invoice(current_user, services.parse_id(invoice_id))
    fields, line_items = _invoice_input()
    invoice = services.update_invoice(current_user, invoice, line_items=line_items, **fields)
    return jsonify(invoice.to_dict(include_client=True))


@api.route('/invoices/<invoice_id>', methods=['DELETE'])
@login_required
def delete_invoice(invoice_id):
    invoice = services.get_owned_invoice(current_user, services.parse_id(invoice_id))
    services.delete_invoice(invoice)
    return Response(status=204)


def _pdf_data(invoice_id):
    invoice = services.get_owned_invoice(current_user, services.parse_id(invoice_id))
    user = services.get_user(current_user.id)
    return sanitize_pdf_data(invoice.to_dict(include_client=True), user.profile_dict())


@api.route('/invoices/preview/<invoice_id>', methods=['GET'])
@login_required
def preview_invoice(invoice_id):
    invoice, user = _pdf_data(invoice_id)
    invoice['totals'] = invoice_totals(invoice).to_dict()
    return jsonify({'invoice': invoice, 'user': user})


@api.route('/invoices/<invoice_id>/pdf', methods=['GET'])
@login_required
def invoice_pdf(invoice_id):
    invoice, user = _pdf_data(invoice_id)
    pdf_bytes = generate_invoice_pdf(
        invoice, user,
        template=request.args.get('template', 'professional'),
        paper=request.args.get('paper', 'A4'),
        currency=current_app.config['INVOICE_CURRENCY_LABEL'],
    )
    disposition = 'attachment' if request.args.get('download') else 'inline'
    return Response(
        pdf_bytes,
        mimetype='application/pdf',
        headers={'Content-Disposition': f'{disposition}; filename="{invoice["invoiceNumber"]}.pdf"'}
    )


# ========================
# Metrics & Profile
# ========================

@api.route('/metrics', methods=['GET'])
@login_required
def metrics():
    return jsonify(services.user_metrics(current_user).to_dict())


@api.route('/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify(services.get_user(current_user.id).profile_dict())


@api.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    payload = json_payload()
    form = validated(ProfileForm, payload)
    fields = {name: getattr(form, name).data for name in services.PROFILE_FIELDS
              if getattr(form, name).raw_data}
    for key in ('paymentDetails', 'itemTableHeaders'):
        value = payload.get(key)
        if value is not None and not isinstance(value, (dict, str)):
            raise ValidationError(f'{key} must be an object')
    user = services.update_profile(
        services.get_user(current_user.id),
        payment_details=payload.get('paymentDetails'),
        item_table_headers=payload.get('itemTableHeaders'),
        **fields,
    )
    return jsonify(user.profile_dict())


# ========================
# Uploads
# ========================

@api.route('/upload', methods=['POST'])
@login_required
def upload():
    file = request.files.get('file')
    if file is None or not file.filename:
        return jsonify({'success': False, 'error': 'No file found.'}), 400
    try:
        url = store_upload(file)
    except UploadRejected as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    return jsonify({'success': True, 'url': url})
