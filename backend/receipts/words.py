"""
Rupee amounts in words and figures, Indian numbering system.

Amounts are grouped by crore (1,00,00,000), lakh (1,00,000), thousand and
hundred, so 12345678 reads "One Crore Twenty Three Lakh Forty Five Thousand
Six Hundred Seventy Eight" and is printed as 1,23,45,678.
"""
from decimal import Decimal, InvalidOperation

ONES = ['', 'One', 'Two', 'Three', 'Four', 'Five', 'Six', 'Seven', 'Eight', 'Nine']
TEENS = ['Ten', 'Eleven', 'Twelve', 'Thirteen', 'Fourteen', 'Fifteen', 'Sixteen',
         'Seventeen', 'Eighteen', 'Nineteen']
TENS = ['', '', 'Twenty', 'Thirty', 'Forty', 'Fifty', 'Sixty', 'Seventy', 'Eighty', 'Ninety']

# Amounts must stay below this, the receipt form accepts 13 whole digits
MAX_AMOUNT = 10 ** 13

# Largest first
MAGNITUDES = (
    (10_000_000, 'Crore'),
    (100_000, 'Lakh'),
    (1_000, 'Thousand'),
    (100, 'Hundred'),
)


def whole_rupees(amount) -> int:
    """
    Return ``amount`` as a non-negative int.

    Raises ValueError for negative amounts and for amounts with a paise
    part: how paise should be worded has not been decided, so they are
    rejected rather than silently truncated.
    """
    if isinstance(amount, bool):
        raise ValueError(f'Invalid amount: {amount!r}')
    if isinstance(amount, int):
        value = Decimal(amount)
    else:
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValueError(f'Invalid amount: {amount!r}')
    if not value.is_finite():
        raise ValueError(f'Invalid amount: {amount!r}')
    if value < 0:
        raise ValueError(f'Amount cannot be negative: {amount}')
    if value >= MAX_AMOUNT:
        raise ValueError(f'Amount is too large: {amount}')
    if value != value.to_integral_value():
        raise ValueError(f'Amounts with paise are not supported: {amount}')
    return int(value)


def _two_digit_words(number: int) -> str:
    if number < 10:
        return ONES[number]
    if number < 20:
        return TEENS[number - 10]
    return TENS[number // 10] + (' ' + ONES[number % 10] if number % 10 else '')


def amount_to_words(amount) -> str:
    """Spell out a whole rupee amount, e.g. 100000 -> 'One Lakh'."""
    number = whole_rupees(amount)
    if number == 0:
        return 'Zero'

    words = ''
    for size, unit in MAGNITUDES:
        if number >= size:
            words += f'{amount_to_words(number // size)} {unit} '
            number %= size

    if number > 0:
        words += _two_digit_words(number)

    return words.strip()


def amount_in_words(amount, currency='Indian Rupee') -> str:
    """The sentence printed on receipts: 'Indian Rupee Five Lakh Only'."""
    return f'{currency} {amount_to_words(amount)} Only'


def group_indian_digits(digits: str) -> str:
    """'1234567' -> '12,34,567'"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ','.join(pairs + [tail])


def format_inr(amount, symbol='Rs.') -> str:
    """
    Format an amount the way en-IN locales print it, e.g. 'Rs. 12,34,567'.

    Up to three fraction digits are kept, trailing zeros dropped.
    """
    try:
        value = Decimal(str(amount))
        sign = '-' if value < 0 else ''
        value = abs(value).quantize(Decimal('0.001'))
    except InvalidOperation:
        raise ValueError(f'Cannot format amount: {amount!r}')
    whole, _, fraction = f'{value:f}'.partition('.')
    fraction = fraction.rstrip('0')
    text = group_indian_digits(whole)
    if fraction:
        text = f'{text}.{fraction}'
    return f'{symbol} {sign}{text}'
