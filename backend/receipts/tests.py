"""
Test suite for Receipts module
Tests: amount in words, number formatting, text wrapping, asset loading,
PDF rendering and the receipt endpoints
"""
import datetime
import io
import os
import random
import tempfile
from decimal import Decimal
from unittest.mock import patch, MagicMock
import requests
from PIL import Image
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.roles import FINANCE_GROUP, EDITOR_GROUP
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.receipts.assets import AssetSources, LoadedAssets, load_asset, load_assets, read_asset
from backend.receipts.exceptions import AssetLoadError
from backend.receipts.generator import (
    ReceiptPayload, build_receipt_pdf, render_receipt, DEFAULT_BRANDING,
    make_reference_number, receipt_filename, sanitize_filename_part,
    place_of_supply_label, format_receipt_date,
)
from backend.receipts.layout import wrap_words, wrap_text, address_lines, pdf_text_measure
from backend.receipts.words import (
    amount_to_words, amount_in_words, whole_rupees, format_inr, group_indian_digits,
)


def png_bytes(size=(40, 20), color='green'):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return buffer.getvalue()


class AmountInWordsTests(SimpleTestCase):
    """Test Indian numbering system wording"""

    def test_zero(self):
        self.assertEqual(amount_to_words(0), 'Zero')

    def test_small_numbers(self):
        self.assertEqual(amount_to_words(7), 'Seven')
        self.assertEqual(amount_to_words(13), 'Thirteen')
        self.assertEqual(amount_to_words(40), 'Forty')
        self.assertEqual(amount_to_words(99), 'Ninety Nine')

    def test_magnitudes(self):
        self.assertEqual(amount_to_words(100), 'One Hundred')
        self.assertEqual(amount_to_words(1000), 'One Thousand')
        self.assertEqual(amount_to_words(100000), 'One Lakh')
        self.assertEqual(amount_to_words(10000000), 'One Crore')

    def test_mixed_amount(self):
        self.assertEqual(
            amount_to_words(12345678),
            'One Crore Twenty Three Lakh Forty Five Thousand Six Hundred Seventy Eight'
        )

    def test_large_crore_count(self):
        self.assertEqual(amount_to_words(1250000000), 'One Hundred Twenty Five Crore')

    def test_skips_empty_groups(self):
        self.assertEqual(amount_to_words(10000005), 'One Crore Five')
        self.assertEqual(amount_to_words(200100), 'Two Lakh One Hundred')

    def test_receipt_sentence(self):
        self.assertEqual(amount_in_words(500000), 'Indian Rupee Five Lakh Only')

    def test_accepts_decimal_and_string(self):
        self.assertEqual(amount_to_words(Decimal('2500.00')), 'Two Thousand Five Hundred')
        self.assertEqual(amount_to_words('15000'), 'Fifteen Thousand')

    def test_paise_rejected(self):
        with self.assertRaises(ValueError):
            amount_to_words(Decimal('10.50'))
        with self.assertRaises(ValueError):
            whole_rupees(0.5)

    def test_negative_rejected(self):
        with self.assertRaises(ValueError):
            amount_to_words(-1)

    def test_garbage_rejected(self):
        for value in ('abc', '', None, True, float('inf'), 'NaN'):
            with self.assertRaises(ValueError):
                whole_rupees(value)

    def test_upper_bound(self):
        self.assertEqual(whole_rupees(10 ** 13 - 1), 9999999999999)
        self.assertEqual(amount_to_words(10 ** 12), 'One Lakh Crore')
        for value in (10 ** 13, '1' + '0' * 30, '1e1000000'):
            with self.assertRaises(ValueError):
                amount_to_words(value)


class FormatINRTests(SimpleTestCase):

    def test_group_indian_digits(self):
        self.assertEqual(group_indian_digits('999'), '999')
        self.assertEqual(group_indian_digits('1000'), '1,000')
        self.assertEqual(group_indian_digits('100000'), '1,00,000')
        self.assertEqual(group_indian_digits('12345678'), '1,23,45,678')

    def test_format_inr(self):
        self.assertEqual(format_inr(500000), 'Rs. 5,00,000')
        self.assertEqual(format_inr(Decimal('1234567.50')), 'Rs. 12,34,567.5')
        self.assertEqual(format_inr(0), 'Rs. 0')
        self.assertEqual(format_inr(-2500, symbol='₹'), '₹ -2,500')

    def test_format_inr_out_of_range(self):
        with self.assertRaises(ValueError):
            format_inr('1' + '0' * 30)
        with self.assertRaises(ValueError):
            format_inr('not a number')


class WrapTests(SimpleTestCase):
    """Test greedy word wrapping"""

    def test_wraps_at_width(self):
        self.assertEqual(
            wrap_words(['aaa', 'bb', 'cc', 'dddd'], 6, len),
            ['aaa bb', 'cc', 'dddd']
        )

    def test_exact_fit_stays_on_line(self):
        self.assertEqual(wrap_words(['ab', 'cd'], 5, len), ['ab cd'])

    def test_overlong_word_gets_own_line(self):
        self.assertEqual(
            wrap_words(['a', 'extraordinarily', 'b'], 5, len),
            ['a', 'extraordinarily', 'b']
        )

    def test_empty_input(self):
        self.assertEqual(wrap_words([], 10, len), [])
        self.assertEqual(wrap_text('   ', 10, len), [])
        self.assertEqual(wrap_text(None, 10, len), [])

    def test_lines_fit_width(self):
        rng = random.Random(42)
        for _ in range(200):
            words = [
                ''.join(rng.choice('abcdefgh') for _ in range(rng.randint(1, 15)))
                for _ in range(rng.randint(0, 25))
            ]
            width = rng.randint(1, 30)
            lines = wrap_words(words, width, len)
            for line in lines:
                self.assertTrue(len(line) <= width or ' ' not in line, (line, width))
            self.assertEqual(' '.join(lines).split(), words)

    def test_pdf_measure(self):
        measure = pdf_text_measure('Times-Bold', 11)
        text = amount_in_words(12345678)
        lines = wrap_text(text, 150, measure)
        self.assertGreater(len(lines), 1)
        for line in lines:
            self.assertLessEqual(measure(line), 150)

    def test_address_truncated_to_two_lines(self):
        address = ' '.join(['Flat 402, Sri Sai Residency, Road No. 12, Banjara Hills'] * 4)
        lines = address_lines(address, 70)
        self.assertEqual(len(lines), 2)
        self.assertTrue(all(len(line) <= 70 for line in lines))

    def test_short_address(self):
        self.assertEqual(address_lines('Madhapur, Hyderabad'), ['Madhapur, Hyderabad'])
        self.assertEqual(address_lines(''), [])


class ReceiptHelperTests(SimpleTestCase):

    def test_sanitize_filename_part(self):
        self.assertEqual(sanitize_filename_part("O'Brien & Co."), 'O_Brien___Co_')
        self.assertEqual(sanitize_filename_part('Ravi Kumar'), 'Ravi_Kumar')
        self.assertEqual(sanitize_filename_part(''), '')

    def test_reference_number(self):
        now = datetime.datetime(2024, 3, 1, tzinfo=datetime.timezone.utc)
        self.assertEqual(make_reference_number(now), 'AGE200000')
        later = now + datetime.timedelta(milliseconds=1)
        self.assertEqual(make_reference_number(later), 'AGE200001')

    def test_filename_uses_render_date(self):
        now = datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)
        self.assertEqual(
            receipt_filename("O'Brien & Co.", now),
            'Axiso_Payment_Receipt_O_Brien___Co__2024-03-01.pdf'
        )

    def test_filename_date_is_utc(self):
        ist = datetime.timezone(datetime.timedelta(hours=5, minutes=30))
        now = datetime.datetime(2024, 3, 1, 2, 0, tzinfo=ist)
        self.assertTrue(receipt_filename('Ravi', now).endswith('_2024-02-29.pdf'))

    def test_place_of_supply_label(self):
        self.assertEqual(place_of_supply_label('Telangana'), 'Telangana (36)')
        self.assertEqual(place_of_supply_label(' AP '), 'Andhra Pradesh (37)')
        self.assertEqual(place_of_supply_label('Karnataka'), 'Karnataka')
        self.assertEqual(place_of_supply_label(''), '')

    def test_format_receipt_date(self):
        self.assertEqual(format_receipt_date('2024-03-01'), '01 March 2024')
        self.assertEqual(format_receipt_date(datetime.date(2024, 12, 25)), '25 December 2024')
        self.assertEqual(format_receipt_date('next tuesday'), 'next tuesday')


class AssetLoadingTests(SimpleTestCase):
    """Test logo/signature loading"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.logo_path = os.path.join(self.tmpdir.name, 'logo.png')
        with open(self.logo_path, 'wb') as fh:
            fh.write(png_bytes())

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_read_asset_from_file(self):
        self.assertTrue(read_asset(self.logo_path).startswith(b'\x89PNG'))

    def test_read_missing_file(self):
        with self.assertRaises(AssetLoadError):
            read_asset(os.path.join(self.tmpdir.name, 'missing.png'))

    @patch('backend.receipts.assets.requests.get')
    def test_read_asset_from_url(self, mock_get):
        mock_get.return_value = MagicMock(content=b'image-bytes')
        self.assertEqual(read_asset('https://cdn.example.com/logo.png', timeout=3), b'image-bytes')
        mock_get.assert_called_once_with('https://cdn.example.com/logo.png', timeout=3)

    @patch('backend.receipts.assets.requests.get')
    def test_read_asset_url_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('connection refused')
        with self.assertRaises(AssetLoadError):
            read_asset('https://cdn.example.com/logo.png')

    async def test_load_asset_from_file(self):
        self.assertIsNotNone(await load_asset(self.logo_path))

    async def test_unconfigured_asset(self):
        self.assertIsNone(await load_asset(None))
        self.assertIsNone(await load_asset(''))

    async def test_undecodable_asset_is_none(self):
        with self.assertLogs('backend.receipts', level='WARNING'):
            self.assertIsNone(await load_asset(b'not an image'))

    async def test_one_failure_does_not_affect_the_other(self):
        sources = AssetSources(logo=self.logo_path, signature=os.path.join(self.tmpdir.name, 'missing.png'))
        with self.assertLogs('backend.receipts', level='WARNING'):
            loaded = await load_assets(sources)
        self.assertIsNotNone(loaded.logo)
        self.assertIsNone(loaded.signature)

    async def test_no_sources(self):
        self.assertEqual(await load_assets(None), LoadedAssets())


class RenderReceiptTests(SimpleTestCase):
    """Test PDF rendering"""

    def setUp(self):
        self.payload = ReceiptPayload(
            date='2024-03-01',
            amount=500000,
            received_from="O'Brien & Co.",
            payment_mode='UPI',
            place_of_supply='Telangana',
            customer_address='Plot 12, Madhapur, Hyderabad, Telangana 500081',
        )
        self.now = datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)

    async def test_render_without_assets(self):
        result = await render_receipt(self.payload, now=self.now)
        self.assertTrue(result.ok)
        self.assertIsNone(result.error)
        document = result.document
        self.assertTrue(document.content.startswith(b'%PDF'))
        self.assertEqual(document.page_count, 1)
        self.assertEqual(document.content_type, 'application/pdf')
        self.assertEqual(document.filename, 'Axiso_Payment_Receipt_O_Brien___Co__2024-03-01.pdf')
        self.assertEqual(document.reference_number, make_reference_number(self.now))

    async def test_render_with_missing_assets_still_succeeds(self):
        sources = AssetSources(logo='/nonexistent/logo.png', signature='/nonexistent/signature.png')
        with self.assertLogs('backend.receipts', level='WARNING'):
            result = await render_receipt(self.payload, sources, now=self.now)
        self.assertTrue(result.ok)

    async def test_render_with_assets(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            logo = os.path.join(tmpdir, 'logo.png')
            signature = os.path.join(tmpdir, 'signature.png')
            with open(logo, 'wb') as fh:
                fh.write(png_bytes((120, 90)))
            Image.new('RGBA', (90, 36), (0, 0, 0, 0)).save(signature)

            plain = await render_receipt(self.payload, now=self.now)
            with_images = await render_receipt(self.payload, AssetSources(logo, signature), now=self.now)

        self.assertTrue(with_images.ok)
        self.assertGreater(len(with_images.document.content), len(plain.document.content))

    async def test_paise_amount_fails_without_raising(self):
        payload = ReceiptPayload(date='2024-03-01', amount=Decimal('100.50'),
                                 received_from='Ravi', payment_mode='Cash')
        with self.assertLogs('backend.receipts', level='ERROR'):
            result = await render_receipt(payload, now=self.now)
        self.assertFalse(result.ok)
        self.assertIsNone(result.document)
        self.assertIn('paise', result.error)

    async def test_oversized_amount_fails_without_raising(self):
        payload = ReceiptPayload(date='2024-03-01', amount=10 ** 30,
                                 received_from='Ravi', payment_mode='Cash')
        with self.assertLogs('backend.receipts', level='ERROR'):
            result = await render_receipt(payload, now=self.now)
        self.assertFalse(result.ok)
        self.assertIn('too large', result.error)

    async def test_unexpected_error_is_returned(self):
        with patch('backend.receipts.generator.build_receipt_pdf', side_effect=RuntimeError('disk full')):
            with self.assertLogs('backend.receipts', level='ERROR'):
                result = await render_receipt(self.payload, now=self.now)
        self.assertFalse(result.ok)
        self.assertIn('disk full', result.error)

    async def test_concurrent_renders_are_independent(self):
        import asyncio
        later = self.now + datetime.timedelta(milliseconds=5)
        first, second = await asyncio.gather(
            render_receipt(self.payload, now=self.now),
            render_receipt(self.payload, now=later),
        )
        self.assertTrue(first.ok and second.ok)
        self.assertNotEqual(first.document.reference_number, second.document.reference_number)

    def test_build_receipt_pdf(self):
        content, page_count = build_receipt_pdf(self.payload, LoadedAssets(), DEFAULT_BRANDING, 'AGE123456')
        self.assertTrue(content.startswith(b'%PDF'))
        self.assertEqual(page_count, 1)


@override_settings(RECEIPT_LOGO_SOURCE=None, RECEIPT_SIGNATURE_SOURCE=None)
class ReceiptAPITests(TestCase):
    """Test receipt endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.finance = TestDataFactory.create_user(groups=[FINANCE_GROUP])
        self.client.authenticate_user(self.finance)
        self.payload = {
            'date': '2024-03-01',
            'amount': '500000',
            'received_from': "O'Brien & Co.",
            'payment_mode': 'Bank Transfer',
            'place_of_supply': 'AP',
            'customer_address': 'Door 4-5, Gachibowli, Hyderabad',
        }

    def test_generate_receipt(self):
        response = self.client.post('/api/v1/receipts/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))
        self.assertIn('attachment; filename="Axiso_Payment_Receipt_O_Brien___Co__', response['Content-Disposition'])
        self.assertTrue(response['X-Receipt-Reference'].startswith('AGE'))

        log = AuditLog.objects.get(action='receipt_generate')
        self.assertEqual(log.object_reference, response['X-Receipt-Reference'])
        self.assertEqual(log.user, self.finance)
        self.assertEqual(log.changes['amount'], '500000')

    def test_paise_amount_rejected(self):
        self.payload['amount'] = '500000.50'
        response = self.client.post('/api/v1/receipts/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data)

    def test_negative_amount_rejected(self):
        self.payload['amount'] = '-10'
        response = self.client.post('/api/v1/receipts/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_fields(self):
        response = self.client.post('/api/v1/receipts/', {'amount': '100'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('received_from', response.data)
        self.assertIn('payment_mode', response.data)

    @patch('backend.receipts.generator.build_receipt_pdf', side_effect=RuntimeError('boom'))
    def test_render_failure_returns_500(self, mock_build):
        with self.assertLogs('backend.receipts', level='ERROR'):
            response = self.client.post('/api/v1/receipts/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Failed to generate receipt')
        self.assertTrue(AuditLog.objects.filter(action='receipt_failed').exists())

    def test_requires_generate_receipts(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[EDITOR_GROUP]))
        response = self.client.post('/api/v1/receipts/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_amount_words_preview(self):
        response = self.client.get('/api/v1/receipts/amount-in-words/?amount=500000')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['words'], 'Indian Rupee Five Lakh Only')
        self.assertEqual(response.data['formatted'], 'Rs. 5,00,000')

    def test_amount_words_preview_invalid(self):
        for amount in ('12.5', 'abc', ''):
            response = self.client.get('/api/v1/receipts/amount-in-words/', {'amount': amount})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_amount_words_preview_too_large(self):
        for amount in ('1' + '0' * 30, '1e1000000', '10000000000000'):
            response = self.client.get('/api/v1/receipts/amount-in-words/', {'amount': amount})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn('too large', response.data['error'])
