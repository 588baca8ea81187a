"""
IBCM Toolkit — Program Image Formats

A program image is an ordered list of 16-bit words, address 0 first.
Two on-disk forms exist:

  hex listing   one word per line as 4 hex digits (big-endian). Anything
                after the first token is annotation; course listings
                carry address and mnemonic columns there:

                    c002    000     jmp     start
                    0001    001     one:    dw 1

                Whole-line `//` comments are skipped. Blank lines may only
                trail the last word.

  binary        2 bytes per word, little-endian, no header or padding.
"""

import logging
from typing import Iterable, List

from .config import COMMENT, MEMORY_SIZE
from .errors import FormatError, ProgramTooLong
from .instruction import bytes_to_word, hex_to_word, word_to_bytes, word_to_hex

__all__ = ['to_hex', 'to_binary', 'parse_hex', 'parse_binary', 'split_lines']

log = logging.getLogger(__name__)


def split_lines(text: str) -> List[str]:
    r"""Split on '\n' only, dropping a trailing '\r' from each line.

    Form feeds, U+2028 and friends stay inside the line they appear in.
    """
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


def to_hex(words: Iterable[int]) -> str:
    """Hex listing text, newline-terminated."""
    return ''.join(word_to_hex(w) + '\n' for w in words)


def to_binary(words: Iterable[int]) -> bytes:
    return b''.join(word_to_bytes(w) for w in words)


def parse_hex(text: str, capacity: int = MEMORY_SIZE) -> List[int]:
    """Parse a hex listing into words."""
    words: List[int] = []
    blank_line = None

    for line_num, line in enumerate(split_lines(text), 1):
        stripped = line.strip()
        if stripped.startswith(COMMENT):
            continue
        if not stripped:
            if blank_line is None:
                blank_line = line_num
            continue
        if blank_line is not None:
            raise FormatError("blank line inside the instruction stream", blank_line)

        token = stripped.split(None, 1)[0]
        try:
            words.append(hex_to_word(token))
        except ValueError:
            raise FormatError(f"expected a 4-digit hexadecimal word, got '{token}'",
                              line_num) from None
        if len(words) > capacity:
            raise ProgramTooLong(len(words), capacity)

    log.debug("parsed hex listing: %d words", len(words))
    return words


def parse_binary(data: bytes, capacity: int = MEMORY_SIZE) -> List[int]:
    """Parse a little-endian binary image into words."""
    if len(data) % 2:
        raise FormatError("odd byte count; dangling byte with no partner",
                          offset=len(data) - 1)
    count = len(data) // 2
    if count > capacity:
        raise ProgramTooLong(count, capacity)
    words = [bytes_to_word(data[i:i + 2]) for i in range(0, len(data), 2)]
    log.debug("parsed binary image: %d words", len(words))
    return words
