"""
Text layout helpers for receipts.
"""
from typing import Callable, Iterable, List

from reportlab.pdfbase.pdfmetrics import stringWidth


def wrap_words(words: Iterable[str], max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedy word wrap.

    Words are added to the current line while the measured width of the
    line stays within ``max_width``; the word that would overflow starts the
    next line. A single word wider than ``max_width`` gets a line of its own.
    """
    lines = []
    line = ''
    for word in words:
        candidate = f'{line} {word}' if line else word
        if line and measure(candidate) > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    return wrap_words((text or '').split(), max_width, measure)


def address_lines(address: str, max_chars: int = 70, max_lines: int = 2) -> List[str]:
    """Wrap a postal address by character count; lines past ``max_lines`` are dropped."""
    if not address:
        return []
    return wrap_text(address, max_chars, len)[:max_lines]


def pdf_text_measure(font_name: str, font_size: float) -> Callable[[str], float]:
    """Width of a string in points for one of the standard PDF fonts."""
    def measure(text):
        return stringWidth(text, font_name, font_size)
    return measure
