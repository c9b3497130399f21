import os
import unittest

os.environ['FLASK_ENV'] = 'testing'

from app import app  # noqa: E402
from billing_core import db  # noqa: E402


class AppTestCase(unittest.TestCase):
    """Fresh in-memory database per test, plus helpers for the JSON API."""

    def setUp(self):
        app.config['TESTING'] = True
        self.app = app
        self.client = app.test_client()
        with app.app_context():
            db.create_all()

    def tearDown(self):
        with app.app_context():
            db.session.remove()
            db.drop_all()

    def register(self, username='alice', password='secret123', client=None, **extra):
        client = client or self.client
        return client.post('/api/auth/register', json=dict(username=username, password=password, **extra))

    def login(self, username='alice', password='secret123', client=None):
        client = client or self.client
        return client.post('/api/auth/login', json={'username': username, 'password': password})

    def signed_in_client(self, username, password='secret123'):
        client = app.test_client()
        self.register(username, password, client=client)
        self.login(username, password, client=client)
        return client

    def create_client(self, client=None, **fields):
        client = client or self.client
        payload = {'fullName': 'Acme Traders', 'email': 'billing@example.com'}
        payload.update(fields)
        rv = client.post('/api/clients', json=payload)
        self.assertEqual(rv.status_code, 201, rv.get_json())
        return rv.get_json()

    def create_invoice(self, client_id, client=None, **fields):
        client = client or self.client
        payload = {
            'clientId': client_id,
            'invoiceDate': '2024-05-01',
            'lineItems': [
                {'description': 'Design work', 'hsnCode': '9983', 'quantity': 2, 'rate': 50},
                {'description': 'Hosting', 'hsnCode': '9984', 'quantity': 1, 'rate': 100},
            ],
        }
        payload.update(fields)
        rv = client.post('/api/invoices', json=payload)
        self.assertEqual(rv.status_code, 201, rv.get_json())
        return rv.get_json()
