# app.py - Billing Desk
import os

from flask import flash, redirect, render_template, url_for
from flask_babel import gettext as _
from flask_login import current_user, login_required
from dotenv import load_dotenv
load_dotenv()

from billing_core import create_app, csrf
from billing_core import services
from billing_core.auth import authenticate, clear_session_cookie, register_user, set_session_cookie
from billing_core.errors import ApiError
from billing_core.totals import format_amount

# Explicitly get FLASK_ENV, default to 'production'
env = os.getenv('FLASK_ENV', 'production')

# Initialize app using factory
app = create_app(env)

from api import api
from forms import LoginForm, RegisterForm

app.register_blueprint(api)
csrf.exempt(api)


@app.context_processor
def inject_helpers():
    return {'format_amount': format_amount}


# ========================
# Authentication
# ========================

@app.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard'))
    form = LoginForm()
    if form.validate_on_submit():
        try:
            user = authenticate(form.username.data, form.password.data)
        except ApiError as e:
            flash(_(e.message), "error")
        else:
            return set_session_cookie(redirect(url_for('dashboard')), user)
    return render_template('auth/login.html', form=form)


@app.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard'))
    form = RegisterForm()
    if form.validate_on_submit():
        try:
            register_user(form.username.data, form.password.data, form.email.data)
        except ApiError as e:
            flash(_(e.message), "error")
        else:
            flash(_("Account created. Please log in."), "success")
            return redirect(url_for('login'))
    return render_template('auth/register.html', form=form)


@app.route('/logout')
def logout():
    flash(_("You have been logged out."), "info")
    return clear_session_cookie(redirect(url_for('login')))


@app.route('/')
def index():
    return redirect(url_for('dashboard'))


# ========================
# Dashboard
# ========================

@app.route('/dashboard')
@login_required
def dashboard():
    metrics = services.user_metrics(current_user)
    recent_invoices = services.list_invoices(current_user)[:10]
    return render_template('dashboard.html', metrics=metrics, recent_invoices=recent_invoices)


# ========================
# Clients & Invoices
# ========================

@app.route('/clients')
@login_required
def list_clients():
    clients = services.list_clients(current_user)
    return render_template('clients/list.html', clients=clients)


@app.route('/invoices')
@login_required
def list_invoices():
    invoices = services.list_invoices(current_user)
    return render_template('invoices/list.html', invoices=invoices)


@app.route('/invoices/preview/<invoice_id>')
@login_required
def preview_invoice(invoice_id):
    try:
        invoice = services.get_owned_invoice(current_user, services.parse_id(invoice_id))
    except ApiError as e:
        flash(_(e.message), "error")
        return redirect(url_for('list_invoices'))
    return render_template('invoices/preview.html', invoice=invoice, totals=invoice.totals)


# ========================
# Profile
# ========================

@app.route('/profile')
@login_required
def profile():
    return render_template('profile.html', profile=current_user.profile_dict())


if __name__ == '__main__':
    from billing_core import db
    with app.app_context():
        db.create_all()
    app.run()
