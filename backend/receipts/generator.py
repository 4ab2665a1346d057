"""
Payment receipt PDF generation.

``render_receipt`` loads the logo and signature, lays out a single A4 page
with reportlab and returns a ReceiptResult. Rendering never raises: failures
are logged and come back as a failed result carrying the reason, so callers
can tell a missing document from a produced one.

Layout positions below are millimetres from the top-left corner of the page.
"""
import datetime
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from django.utils.dateparse import parse_date, parse_datetime
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from .assets import AssetSources, LoadedAssets, load_assets
from .exceptions import RenderError
from .layout import address_lines, pdf_text_measure, wrap_text
from .words import amount_in_words, format_inr

logger = logging.getLogger('backend.receipts')

PAGE_WIDTH, PAGE_HEIGHT = A4
PAGE_WIDTH_MM = PAGE_WIDTH / mm
PAGE_HEIGHT_MM = PAGE_HEIGHT / mm
MARGIN = 15

GREEN = colors.HexColor('#38A169')
WHITE = colors.white
TEXT_DARK = colors.HexColor('#282828')
TEXT_BODY = colors.HexColor('#3C3C3C')
TEXT_MUTED = colors.HexColor('#505050')
TEXT_FOOTER = colors.HexColor('#787878')
BOX_FILL = colors.HexColor('#F8FAFC')
BOX_BORDER = colors.HexColor('#C8C8C8')
SEPARATOR = colors.HexColor('#DCDCDC')
SIGNATURE_LINE = colors.HexColor('#969696')

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

PLACE_OF_SUPPLY_CODES = {
    'telangana': 'Telangana (36)',
    'ap': 'Andhra Pradesh (37)',
    'andhra pradesh': 'Andhra Pradesh (37)',
}


@dataclass(frozen=True)
class Branding:
    company_name: str
    tagline: str
    contact_lines: Tuple[str, ...]
    reference_prefix: str
    file_prefix: str
    thank_you: str
    closing: str


DEFAULT_BRANDING = Branding(
    company_name='AXISO GREEN ENERGIES PRIVATE LIMITED',
    tagline='Sustainable Energy Solutions for a Greener Tomorrow',
    contact_lines=(
        'Address: PLOT NO-102,103 TEMPLE LANE MYTHRI NAGAR',
        'Shri Ambika Vidya Mandir, MATHRUSRINAGAR, SERILINGAMPALLY',
        'Hyderabad, Rangareddy, Telangana, 500049',
        'Email: contact@axisogreen.in',
        'Website: www.axisogreen.in',
        'GSTIN: 36ABBCA4478M1Z9',
    ),
    reference_prefix='AGE',
    file_prefix='Axiso',
    thank_you='Thank you for choosing sustainable energy solutions!',
    closing='Together, we power a sustainable future.',
)


@dataclass(frozen=True)
class ReceiptPayload:
    date: str
    amount: object
    received_from: str
    payment_mode: str
    place_of_supply: str = ''
    customer_address: str = ''


@dataclass(frozen=True)
class ReceiptDocument:
    content: bytes = field(repr=False)
    filename: str
    reference_number: str
    page_count: int = 1
    content_type: str = 'application/pdf'


@dataclass(frozen=True)
class ReceiptResult:
    document: Optional[ReceiptDocument] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.document is not None

    @classmethod
    def success(cls, document):
        return cls(document=document)

    @classmethod
    def failure(cls, reason):
        return cls(error=reason)


def place_of_supply_label(place_of_supply: str) -> str:
    """Append the GST state code for the states the company bills in"""
    return PLACE_OF_SUPPLY_CODES.get((place_of_supply or '').strip().lower(), place_of_supply)


def format_receipt_date(value) -> str:
    """'2024-03-01' -> '01 March 2024'; anything unparseable is printed as given"""
    parsed = value
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value) or parse_date(value)
        except ValueError:
            parsed = None
    if isinstance(parsed, (datetime.date, datetime.datetime)):
        return parsed.strftime('%d %B %Y')
    return '' if value is None else str(value)


def make_reference_number(now: datetime.datetime, prefix: str = 'AGE') -> str:
    """
    Prefix plus the last six digits of the millisecond timestamp.

    Two receipts rendered in the same millisecond, or exactly 1,000,000 ms
    apart, share a reference.
    """
    if now.tzinfo is None:
        now = now.astimezone()
    millis = (now - EPOCH) // datetime.timedelta(milliseconds=1)
    return f'{prefix}{str(millis)[-6:]}'


def sanitize_filename_part(value: str) -> str:
    return re.sub(r'[^A-Za-z0-9]', '_', value or '')


def receipt_filename(received_from: str, now: datetime.datetime, prefix: str = 'Axiso', ext: str = 'pdf') -> str:
    """<prefix>_Payment_Receipt_<payer>_<YYYY-MM-DD>.<ext>, dated on the day of rendering (UTC)"""
    day = now.astimezone(datetime.timezone.utc).date().isoformat() if now.tzinfo else now.date().isoformat()
    return f'{prefix}_Payment_Receipt_{sanitize_filename_part(received_from)}_{day}.{ext}'


class _Page:
    """Thin wrapper over a reportlab canvas taking top-left millimetre coordinates"""

    def __init__(self, pdf):
        self.pdf = pdf

    @staticmethod
    def x(left_mm):
        return left_mm * mm

    @staticmethod
    def y(top_mm):
        return PAGE_HEIGHT - top_mm * mm

    def text(self, value, left, top, font, size, color):
        self.pdf.setFont(font, size)
        self.pdf.setFillColor(color)
        self.pdf.drawString(self.x(left), self.y(top), value)

    def centred_text(self, value, centre, top, font, size, color):
        self.pdf.setFont(font, size)
        self.pdf.setFillColor(color)
        self.pdf.drawCentredString(self.x(centre), self.y(top), value)

    def line(self, x1, top1, x2, top2, color, width):
        self.pdf.setStrokeColor(color)
        self.pdf.setLineWidth(width * mm)
        self.pdf.line(self.x(x1), self.y(top1), self.x(x2), self.y(top2))

    def rect(self, left, top, width, height, fill=None, stroke=None, stroke_width=0.5):
        if fill is not None:
            self.pdf.setFillColor(fill)
        if stroke is not None:
            self.pdf.setStrokeColor(stroke)
            self.pdf.setLineWidth(stroke_width * mm)
        self.pdf.rect(
            self.x(left), self.y(top + height), width * mm, height * mm,
            fill=1 if fill is not None else 0,
            stroke=1 if stroke is not None else 0,
        )

    def image(self, reader, left, top, width, height):
        self.pdf.drawImage(
            reader, self.x(left), self.y(top + height), width * mm, height * mm,
            mask='auto', preserveAspectRatio=True, anchor='c'
        )


def build_receipt_pdf(payload: ReceiptPayload, assets: LoadedAssets, branding: Branding,
                      reference_number: str) -> Tuple[bytes, int]:
    """Draw the receipt and return the PDF bytes with the page count"""
    try:
        words = amount_in_words(payload.amount)
        amount_text = format_inr(payload.amount)
    except ValueError as e:
        raise RenderError(str(e)) from e

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(f'Payment Receipt {reference_number}')
    pdf.setAuthor(branding.company_name)
    page = _Page(pdf)
    content_width = PAGE_WIDTH_MM - 2 * MARGIN

    # Header band and company identity
    page.rect(0, 0, PAGE_WIDTH_MM, 6, fill=GREEN)
    page.text(branding.company_name, MARGIN, 20, 'Times-Bold', 16, GREEN)
    page.text(branding.tagline, MARGIN, 27, 'Times-Italic', 9, GREEN)
    for index, detail in enumerate(branding.contact_lines):
        page.text(detail, MARGIN, 35 + index * 5, 'Times-Roman', 9, TEXT_BODY)

    if assets.logo is not None:
        page.image(assets.logo, PAGE_WIDTH_MM - MARGIN - 50, 12, 45, 35)

    page.line(MARGIN, 65, PAGE_WIDTH_MM - MARGIN, 65, SEPARATOR, 0.5)

    # Title
    title = 'PAYMENT RECEIPT'
    title_width = pdf_text_measure('Times-Bold', 20)(title) / mm
    title_x = (PAGE_WIDTH_MM - title_width) / 2
    page.text(title, title_x, 75, 'Times-Bold', 20, GREEN)
    page.line(title_x, 78, title_x + title_width, 78, GREEN, 1)

    # Details (left) and amount box (right)
    details_top = 90
    left_x = MARGIN
    right_x = PAGE_WIDTH_MM / 2 + 10
    value_x = left_x + 45
    row_height = 12
    details = (
        ('Payment Date:', format_receipt_date(payload.date)),
        ('Reference No:', reference_number),
        ('Payment Mode:', payload.payment_mode or ''),
        ('Place of Supply:', place_of_supply_label(payload.place_of_supply) or ''),
    )
    for index, (label, value) in enumerate(details):
        top = details_top + index * row_height
        page.text(label, left_x, top, 'Times-Roman', 11, GREEN)
        page.text(str(value), value_x, top, 'Times-Bold', 11, TEXT_DARK)

    box_width = PAGE_WIDTH_MM - right_x - MARGIN
    page.rect(right_x, details_top - 5, box_width, 35, fill=GREEN, stroke=GREEN, stroke_width=1)
    page.text('AMOUNT RECEIVED', right_x + 5, details_top + 3, 'Times-Bold', 10, WHITE)
    page.text(amount_text, right_x + 5, details_top + 15, 'Times-Bold', 16, WHITE)

    # Amount in words
    words_top = details_top + 60
    page.text('Amount in Words:', left_x, words_top, 'Times-Roman', 11, TEXT_MUTED)
    page.rect(left_x, words_top + 5, content_width, 20, fill=BOX_FILL, stroke=BOX_BORDER)
    measure = pdf_text_measure('Times-Bold', 11)
    for index, line in enumerate(wrap_text(words, (content_width - 10) * mm, measure)):
        page.text(line, left_x + 5, words_top + 15 + index * 8, 'Times-Bold', 11, GREEN)

    # Received from
    customer_top = words_top + 40
    page.text('RECEIVED FROM', left_x, customer_top, 'Times-Bold', 13, GREEN)
    page.line(left_x, customer_top + 2, left_x + 40, customer_top + 2, GREEN, 1)
    box_top = customer_top + 8
    page.rect(left_x, box_top, content_width, 30, fill=BOX_FILL, stroke=BOX_BORDER)
    page.text(payload.received_from, left_x + 5, box_top + 10, 'Times-Bold', 12, TEXT_DARK)
    for index, line in enumerate(address_lines(payload.customer_address, 70)):
        page.text(line, left_x + 5, box_top + 20 + index * 6, 'Times-Roman', 10, TEXT_MUTED)

    # Footer
    footer_top = customer_top + 55
    page.text(branding.thank_you, left_x, footer_top, 'Times-Italic', 10, GREEN)

    if assets.signature is not None:
        signature_x = PAGE_WIDTH_MM - MARGIN - 55
        page.image(assets.signature, signature_x, footer_top + 5, 45, 18)
        page.line(signature_x, footer_top + 25, signature_x + 45, footer_top + 25, SIGNATURE_LINE, 0.5)
        page.text('Authorized Signature', signature_x, footer_top + 30, 'Times-Roman', 9, TEXT_MUTED)

    page.line(0, PAGE_HEIGHT_MM - 5, PAGE_WIDTH_MM, PAGE_HEIGHT_MM - 5, GREEN, 2)
    page.centred_text(branding.closing, PAGE_WIDTH_MM / 2, PAGE_HEIGHT_MM - 10, 'Times-Roman', 8, TEXT_FOOTER)

    page_count = pdf.getPageNumber()
    pdf.showPage()
    pdf.save()
    return buffer.getvalue(), page_count


async def render_receipt(payload: ReceiptPayload, assets: Optional[AssetSources] = None, *,
                         branding: Optional[Branding] = None,
                         now: Optional[datetime.datetime] = None) -> ReceiptResult:
    """
    Render a payment receipt.

    Logo and signature are loaded concurrently first; a missing asset only
    drops that image. Any other failure is logged and returned as a failed
    ReceiptResult, never raised.
    """
    try:
        branding = branding or DEFAULT_BRANDING
        now = now or datetime.datetime.now(datetime.timezone.utc)

        loaded = await load_assets(assets)

        reference_number = make_reference_number(now, branding.reference_prefix)
        content, page_count = build_receipt_pdf(payload, loaded, branding, reference_number)
        filename = receipt_filename(payload.received_from, now, branding.file_prefix)

        logger.info(f'Generated payment receipt {reference_number} ({filename})')
        return ReceiptResult.success(ReceiptDocument(
            content=content,
            filename=filename,
            reference_number=reference_number,
            page_count=page_count,
        ))
    except RenderError as e:
        logger.error(f'Error generating receipt PDF: {e}')
        return ReceiptResult.failure(str(e))
    except Exception as e:
        logger.exception('Error generating receipt PDF')
        return ReceiptResult.failure(f'Unexpected error while generating receipt: {e}')
