import base64
import shutil
import tempfile
import unittest
from io import BytesIO
from unittest import mock

from reportlab.pdfgen import canvas

from tests.helpers import AppTestCase, app
from utils.pdf_generator import _draw_image
from utils.storage import open_upload, s3_object_key

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=='
)


class UploadTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        self.upload_dir = tempfile.mkdtemp()
        self._saved_folder = app.config['UPLOAD_FOLDER']
        app.config['UPLOAD_FOLDER'] = self.upload_dir
        self.register()
        self.login()

    def tearDown(self):
        app.config['UPLOAD_FOLDER'] = self._saved_folder
        shutil.rmtree(self.upload_dir, ignore_errors=True)
        super().tearDown()

    def upload(self, payload, filename, mimetype):
        return self.client.post(
            '/api/upload',
            data={'file': (BytesIO(payload), filename, mimetype)},
            content_type='multipart/form-data',
        )

    def test_upload_png(self):
        rv = self.upload(PNG_BYTES, 'company logo.png', 'image/png')
        self.assertEqual(rv.status_code, 200)
        data = rv.get_json()
        self.assertTrue(data['success'])
        self.assertTrue(data['url'].startswith('/static/uploads/'))
        self.assertTrue(data['url'].endswith('-company_logo.png'))

    def test_rejects_large_file(self):
        rv = self.upload(b'\x00' * (5 * 1024 * 1024 + 1), 'big.png', 'image/png')
        self.assertEqual(rv.status_code, 400)
        self.assertEqual(rv.get_json(), {'success': False, 'error': 'File is too large (max 5MB).'})

    def test_rejects_wrong_type(self):
        rv = self.upload(b'%PDF-1.4', 'doc.pdf', 'application/pdf')
        self.assertEqual(rv.status_code, 400)
        self.assertFalse(rv.get_json()['success'])

    def test_requires_file(self):
        rv = self.client.post('/api/upload', data={}, content_type='multipart/form-data')
        self.assertEqual(rv.status_code, 400)

    def test_requires_login(self):
        self.client.post('/api/auth/logout')
        rv = self.upload(PNG_BYTES, 'logo.png', 'image/png')
        self.assertEqual(rv.status_code, 401)

    def test_pdf_renders_with_uploaded_logo(self):
        url = self.upload(PNG_BYTES, 'logo.png', 'image/png').get_json()['url']
        self.client.put('/api/profile', json={'companyLogoUrl': url})
        client = self.create_client()
        invoice = self.create_invoice(client['id'])
        rv = self.client.get(f"/api/invoices/{invoice['id']}/pdf")
        self.assertEqual(rv.status_code, 200)
        self.assertTrue(rv.data.startswith(b'%PDF'))

    def test_payment_qr_code_is_drawn(self):
        url = self.upload(PNG_BYTES, 'qr.png', 'image/png').get_json()['url']
        rv = self.client.put('/api/profile', json={
            'paymentDetails': {'upiId': 'billing@upi', 'qrCodeUrl': url},
        })
        self.assertEqual(rv.status_code, 200)
        with app.test_request_context():
            c = canvas.Canvas(BytesIO())
            self.assertTrue(_draw_image(c, url, 0, 100, size=80))
            self.assertFalse(_draw_image(c, '/static/uploads/missing.png', 0, 100))

        client = self.create_client()
        invoice = self.create_invoice(client['id'])
        rv = self.client.get(f"/api/invoices/{invoice['id']}/pdf")
        self.assertEqual(rv.status_code, 200)
        self.assertTrue(rv.data.startswith(b'%PDF'))


class S3UploadTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        app.config['AWS_S3_BUCKET'] = 'billing-assets'
        app.config['AWS_S3_REGION'] = 'us-east-1'
        self.s3 = mock.MagicMock()
        patcher = mock.patch('utils.storage._s3_client', return_value=self.s3)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.register()
        self.login()

    def tearDown(self):
        app.config['AWS_S3_BUCKET'] = None
        super().tearDown()

    def test_upload_goes_to_s3(self):
        rv = self.client.post(
            '/api/upload',
            data={'file': (BytesIO(PNG_BYTES), 'logo.png', 'image/png')},
            content_type='multipart/form-data',
        )
        self.assertEqual(rv.status_code, 200)
        url = rv.get_json()['url']
        self.assertTrue(url.startswith('https://billing-assets.s3.us-east-1.amazonaws.com/uploads/'))
        args, kwargs = self.s3.upload_fileobj.call_args
        self.assertEqual(args[1], 'billing-assets')
        self.assertEqual(kwargs['ExtraArgs'], {'ContentType': 'image/png'})

    def test_s3_images_are_fetched_for_pdf(self):
        self.s3.get_object.return_value = {'Body': BytesIO(PNG_BYTES)}
        url = 'https://billing-assets.s3.us-east-1.amazonaws.com/uploads/1-logo.png'
        with app.test_request_context():
            self.assertEqual(s3_object_key(url), 'uploads/1-logo.png')
            self.assertIsNone(s3_object_key('https://elsewhere.example.com/logo.png'))
            source = open_upload(url)
            self.assertEqual(source.read(), PNG_BYTES)
        self.s3.get_object.assert_called_once_with(Bucket='billing-assets', Key='uploads/1-logo.png')

    def test_pdf_uses_s3_logo(self):
        self.s3.get_object.return_value = {'Body': BytesIO(PNG_BYTES)}
        url = 'https://billing-assets.s3.us-east-1.amazonaws.com/uploads/1-logo.png'
        self.client.put('/api/profile', json={'companyLogoUrl': url})
        client = self.create_client()
        invoice = self.create_invoice(client['id'])
        rv = self.client.get(f"/api/invoices/{invoice['id']}/pdf")
        self.assertEqual(rv.status_code, 200)
        self.assertTrue(rv.data.startswith(b'%PDF'))
        self.s3.get_object.assert_called_once_with(Bucket='billing-assets', Key='uploads/1-logo.png')


if __name__ == '__main__':
    unittest.main()
