# utils/pdf_generator.py
import logging
from io import BytesIO

from reportlab.lib.colors import black, HexColor
from reportlab.lib.pagesizes import A4, LEGAL, LETTER
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from billing_core.totals import compute_totals, format_amount
from utils.storage import open_upload

logger = logging.getLogger(__name__)

PAPER_SIZES = {
    'A4': A4,
    'LETTER': LETTER,
    'LEGAL': LEGAL,
}

TEMPLATES = {
    'professional': 'INVOICE',
    'tax': 'TAX INVOICE',
}

ACCENT = HexColor('#1A237E')
MUTED = HexColor('#666666')


def get_page_size(paper):
    return PAPER_SIZES.get(str(paper or 'A4').upper(), A4)


def wrap_text(text, max_chars):
    text = str(text or '')
    return [text[i:i + max_chars] for i in range(0, len(text), max_chars)] or [""]


def _draw_image(c, url, x, y, size=60):
    source = open_upload(url)
    if source is None:
        return False
    try:
        img = ImageReader(source)
        c.drawImage(img, x, y - size, width=size, height=size, mask='auto', preserveAspectRatio=True)
        return True
    except Exception:
        # A broken image must not stop the document.
        logger.warning("Failed to draw image %s", url, exc_info=True)
        return False


def generate_invoice_pdf(invoice, user, template='professional', paper='A4', currency='Rs.'):
    """Render a sanitized invoice and user profile to PDF bytes.

    ``invoice`` and ``user`` are the structures returned by
    ``utils.pdf_data.sanitize_pdf_data``; every field is assumed present.
    """
    template = template if template in TEMPLATES else 'professional'
    page_size = get_page_size(paper)
    totals = compute_totals(
        invoice['lineItems'],
        discount=invoice['discount'],
        tax_rate=invoice['taxRate'],
        previous_dues=invoice['previousDues'],
    )
    logger.debug("Rendering %s (%s, %s) total=%s",
                 invoice['invoiceNumber'], template, paper, format_amount(totals.total))

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=page_size)
    c.setTitle(f"Invoice {invoice['invoiceNumber']}")
    width, height = page_size
    margin = 40
    y = height - margin

    # --- Company Info (Top Left) ---
    text_x = margin
    if user['companyLogoUrl'] and _draw_image(c, user['companyLogoUrl'], margin, y):
        text_x = margin + 70

    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 20)
    c.drawString(text_x, y - 16, user['companyName'])

    c.setFillColor(MUTED)
    c.setFont("Helvetica", 9)
    contact_y = y - 32
    contact_lines = wrap_text(user['companyAddress'], 70) if user['companyAddress'] else []
    contact_lines += [line for line in (user['contactPhone'], user['email'], user['contactWebsite']) if line]
    if template == 'tax':
        if user['taxPanNumber']:
            contact_lines.append(f"PAN: {user['taxPanNumber']}")
        if user['taxGstin']:
            contact_lines.append(f"GSTIN: {user['taxGstin']}")
    for line in contact_lines:
        c.drawString(text_x, contact_y, line)
        contact_y -= 12

    # --- Document Title (Top Right) ---
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 18)
    c.drawRightString(width - margin, y - 16, TEMPLATES[template])
    c.setFillColor(black)
    c.setFont("Helvetica", 10)
    info_y = y - 32
    info_lines = [
        f"No: {invoice['invoiceNumber']}",
        f"Date: {invoice['invoiceDate'][:10]}",
    ]
    if invoice['dueDate']:
        info_lines.append(f"Due: {invoice['dueDate'][:10]}")
    if invoice['referenceName']:
        info_lines.append(f"Ref: {invoice['referenceName']}")
    for line in info_lines:
        c.drawRightString(width - margin, info_y, line)
        info_y -= 12

    y = min(contact_y, info_y) - 20
    c.setStrokeColor(ACCENT)
    c.setLineWidth(2)
    c.line(margin, y, width - margin, y)
    c.setLineWidth(1)
    y -= 20

    # --- Client Info ---
    client = invoice['client']
    c.setFont("Helvetica-Bold", 11)
    c.drawString(margin, y, "Bill To:")
    y -= 14
    c.setFont("Helvetica", 10)
    client_lines = [client['fullName']]
    if client['tradeName']:
        client_lines.append(client['tradeName'])
    client_lines += wrap_text(client['billingAddress'], 70) if client['billingAddress'] else []
    if client['phoneNumber']:
        client_lines.append(client['phoneNumber'])
    if template == 'tax':
        if client['panNumber']:
            client_lines.append(f"PAN: {client['panNumber']}")
        if client['gstin']:
            client_lines.append(f"GSTIN: {client['gstin']}")
    for line in client_lines:
        c.drawString(margin, y, line)
        y -= 12
    y -= 16

    # --- Table Headers ---
    headers = user['itemTableHeaders']
    columns = [
        (margin, headers['itemNo']),
        (margin + 35, headers['description']),
        (margin + width * 0.45, headers['hsnCode']),
        (margin + width * 0.58, headers['quantity']),
        (margin + width * 0.67, headers['rate']),
    ]
    amount_x = width - margin

    def draw_headers(y):
        c.setFont("Helvetica-Bold", 10)
        for x, label in columns:
            c.drawString(x, y, label)
        c.drawRightString(amount_x, y, headers['amount'])
        y -= 6
        c.setStrokeColor(black)
        c.line(margin, y, width - margin, y)
        c.setFont("Helvetica", 10)
        return y - 14

    y = draw_headers(y)

    # --- Items ---
    items = invoice['lineItems']
    if not items:
        c.drawString(margin, y, "No items listed.")
        y -= 20
    for index, item in enumerate(items, start=1):
        desc_lines = wrap_text(item['description'], 40)
        if y - 12 * len(desc_lines) < 120:
            c.showPage()
            y = draw_headers(height - margin)
        c.drawString(columns[0][0], y, str(index))
        c.drawString(columns[2][0], y, item['hsnCode'])
        c.drawString(columns[3][0], y, f"{item['quantity']:g}")
        c.drawString(columns[4][0], y, format_amount(item['rate']))
        c.drawRightString(amount_x, y, format_amount(item['quantity'] * item['rate']))
        for line in desc_lines:
            c.drawString(columns[1][0], y, line)
            y -= 12
        y -= 4

    # --- Totals ---
    y -= 10
    if y < 160:
        c.showPage()
        y = height - margin
    label_x = width - margin - 110
    rows = [("Subtotal", f"{currency} {format_amount(totals.subtotal)}")]
    if invoice['discount'] > 0:
        rows.append((f"Discount ({invoice['discount']:.1f}%)",
                     f"- {currency} {format_amount(totals.discount_amount)}"))
    if invoice['taxRate'] > 0:
        rows.append((f"Tax ({invoice['taxRate']:.1f}%)",
                     f"+ {currency} {format_amount(totals.tax_amount)}"))
    if invoice['previousDues'] > 0:
        rows.append(("Previous Dues", f"+ {currency} {format_amount(totals.previous_dues)}"))

    c.setFont("Helvetica", 10)
    for label, value in rows:
        c.drawRightString(label_x, y, label)
        c.drawRightString(width - margin, y, value)
        y -= 14
    c.line(label_x - 80, y + 8, width - margin, y + 8)
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(label_x, y - 6, "Total")
    c.drawRightString(width - margin, y - 6, f"{currency} {format_amount(totals.total)}")
    c.setFillColor(black)
    y -= 40

    # --- Payment Details ---
    payment = user['paymentDetails']
    payment_lines = [
        f"{label}: {payment[key]}"
        for key, label in (
            ('accountName', 'Account Name'),
            ('accountNumber', 'Account No'),
            ('bankName', 'Bank'),
            ('ifscCode', 'IFSC'),
            ('upiId', 'UPI'),
            ('gPayNumber', 'GPay'),
        )
        if payment[key]
    ]
    qr_url = payment['qrCodeUrl']
    if payment_lines or qr_url:
        if y < 140:
            c.showPage()
            y = height - margin
        block_top = y
        if payment_lines:
            c.setFont("Helvetica-Bold", 10)
            c.drawString(margin, y, "Payment Details")
            y -= 14
            c.setFont("Helvetica", 9)
            for line in payment_lines:
                c.drawString(margin, y, line)
                y -= 12
        qr_size = 80
        qr_x = width - margin - qr_size
        if qr_url and _draw_image(c, qr_url, qr_x, block_top + 10, size=qr_size):
            c.setFont("Helvetica", 8)
            c.drawCentredString(qr_x + qr_size / 2, block_top - qr_size, "Scan to Pay")
            y = min(y, block_top - qr_size - 12)
        y -= 8

    # --- Notes ---
    if invoice['notes']:
        c.setFont("Helvetica-Bold", 10)
        c.drawString(margin, y, "Notes")
        y -= 14
        c.setFont("Helvetica", 9)
        for line in wrap_text(invoice['notes'], 95):
            if y < margin:
                c.showPage()
                y = height - margin
                c.setFont("Helvetica", 9)
            c.drawString(margin, y, line)
            y -= 12

    # --- DRAFT Watermark ---
    if invoice['status'] == 'DRAFT':
        c.saveState()
        c.setFont("Helvetica-Bold", 80)
        c.setFillColor(black)
        c.setFillAlpha(0.1)
        c.translate(width / 2, height / 2)
        c.rotate(45)
        c.drawCentredString(0, 0, "DRAFT")
        c.restoreState()

    # Finalize
    c.save()
    buffer.seek(0)
    return buffer.getvalue()
