"""
IBCM Toolkit — Instruction Codec

Maps between 16-bit machine words and decoded Instruction values, and
between a word and its two serialized forms.

Word layout:
  bits 15..12  opcode
  bits 11..0   address operand        (load/store/arithmetic/jumps)
               or sub-function         (I/O family)
               or shift op + amount    (shift family: op in 11..10, amount in 3..0)
               or zero                 (halt, not, nop)

Serialized forms:
  hex listing  4 hex digits, big-endian (digits read bit 15 down to bit 0)
  binary file  2 bytes, little-endian. Existing IBCM tools write
               the low byte first even though the machine is big-endian,
               and images must stay byte-compatible with them.

Data words (`dw`) are never special-cased here: a data word that the
program counter reaches is decoded like any other word.
"""

from __future__ import annotations
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .config import ADDRESS_MASK, HEX_DIGITS, WORD_MASK
from .errors import UnknownOpcode, UnknownSubFunction

__all__ = [
    'Opcode', 'IoOp', 'ShiftOp', 'Instruction', 'MNEMONICS',
    'decode', 'encode', 'word_to_hex', 'hex_to_word', 'word_to_bytes', 'bytes_to_word',
]


class Opcode(Enum):
    HALT = 0x0
    IO = 0x1
    SHIFT = 0x2
    LOAD = 0x3
    STORE = 0x4
    ADD = 0x5
    SUB = 0x6
    AND = 0x7
    OR = 0x8
    XOR = 0x9
    NOT = 0xA
    NOP = 0xB
    JMP = 0xC
    JMPE = 0xD
    JMPL = 0xE
    BRL = 0xF


class IoOp(Enum):
    """I/O sub-functions, stored verbatim in the low 12 bits."""
    READ_HEX = 0x000
    READ_CHAR = 0x004
    PRINT_HEX = 0x008
    PRINT_CHAR = 0x00C


class ShiftOp(Enum):
    """Shift sub-operations, stored in bits 11..10."""
    SHIFT_LEFT = 0
    SHIFT_RIGHT = 1
    ROTATE_LEFT = 2
    ROTATE_RIGHT = 3


# ──────────────────────────────────────────────
# Instruction classes
# ──────────────────────────────────────────────

ADDRESSED = frozenset({
    Opcode.LOAD, Opcode.STORE, Opcode.ADD, Opcode.SUB, Opcode.AND,
    Opcode.OR, Opcode.XOR, Opcode.JMP, Opcode.JMPE, Opcode.JMPL, Opcode.BRL,
})
NO_OPERAND = frozenset({Opcode.HALT, Opcode.NOT, Opcode.NOP})
JUMPS = frozenset({Opcode.JMP, Opcode.JMPE, Opcode.JMPL, Opcode.BRL})

SHIFT_RESERVED_BITS = 0x03F0   # bits 9..4 of a shift word must be clear
SHIFT_AMOUNT_MASK = 0x000F


# ──────────────────────────────────────────────
# Mnemonic table
# ──────────────────────────────────────────────
# Format: { 'mnemonic': (opcode, sub-function or None) }
# Mnemonics are case-sensitive, spelled as in the IBCM example programs.

Sub = Union[IoOp, ShiftOp, None]

MNEMONICS: Dict[str, Tuple[Opcode, Sub]] = {}
_NAMES: Dict[Tuple[Opcode, Sub], str] = {}


def _op(mnemonic: str, opcode: Opcode, sub: Sub = None):
    """Register a mnemonic."""
    MNEMONICS[mnemonic] = (opcode, sub)
    _NAMES[(opcode, sub)] = mnemonic


_op('halt',   Opcode.HALT)
_op('readH',  Opcode.IO,    IoOp.READ_HEX)
_op('readC',  Opcode.IO,    IoOp.READ_CHAR)
_op('printH', Opcode.IO,    IoOp.PRINT_HEX)
_op('printC', Opcode.IO,    IoOp.PRINT_CHAR)
_op('shiftL', Opcode.SHIFT, ShiftOp.SHIFT_LEFT)
_op('shiftR', Opcode.SHIFT, ShiftOp.SHIFT_RIGHT)
_op('rotL',   Opcode.SHIFT, ShiftOp.ROTATE_LEFT)
_op('rotR',   Opcode.SHIFT, ShiftOp.ROTATE_RIGHT)
_op('load',   Opcode.LOAD)
_op('store',  Opcode.STORE)
_op('add',    Opcode.ADD)
_op('sub',    Opcode.SUB)
_op('and',    Opcode.AND)
_op('or',     Opcode.OR)
_op('xor',    Opcode.XOR)
_op('not',    Opcode.NOT)
_op('nop',    Opcode.NOP)
_op('jmp',    Opcode.JMP)
_op('jmpe',   Opcode.JMPE)
_op('jmpl',   Opcode.JMPL)
_op('brl',    Opcode.BRL)


@dataclass(frozen=True)
class Instruction:
    """A decoded IBCM instruction.

    Which fields are meaningful depends on the opcode class:
      addressed   address (0..0xFFF)
      I/O         io
      shift       shift, amount (0..15)
      otherwise   nothing
    """
    opcode: Opcode
    address: Optional[int] = None
    io: Optional[IoOp] = None
    shift: Optional[ShiftOp] = None
    amount: int = 0

    def __post_init__(self):
        op = self.opcode
        if op in ADDRESSED:
            if self.address is None or not 0 <= self.address <= ADDRESS_MASK:
                raise ValueError(f"{op.name} needs a 12-bit address, got {self.address!r}")
        elif self.address is not None:
            raise ValueError(f"{op.name} takes no address")
        if (op is Opcode.IO) != (self.io is not None):
            raise ValueError(f"I/O sub-function only valid for the I/O opcode, got {op.name}")
        if (op is Opcode.SHIFT) != (self.shift is not None):
            raise ValueError(f"shift operation only valid for the shift opcode, got {op.name}")
        if not 0 <= self.amount <= SHIFT_AMOUNT_MASK or (self.amount and op is not Opcode.SHIFT):
            raise ValueError(f"invalid shift amount {self.amount!r} for {op.name}")

    @property
    def mnemonic(self) -> str:
        if self.opcode is Opcode.IO:
            return _NAMES[(self.opcode, self.io)]
        if self.opcode is Opcode.SHIFT:
            return _NAMES[(self.opcode, self.shift)]
        return _NAMES[(self.opcode, None)]

    @property
    def has_address(self) -> bool:
        return self.opcode in ADDRESSED

    @property
    def is_jump(self) -> bool:
        return self.opcode in JUMPS

    def __str__(self) -> str:
        if self.has_address:
            return f"{self.mnemonic} {self.address:03x}"
        if self.opcode is Opcode.SHIFT:
            return f"{self.mnemonic} {self.amount}"
        return self.mnemonic


# ──────────────────────────────────────────────
# Word <-> Instruction
# ──────────────────────────────────────────────

def decode(word: int) -> Instruction:
    """Decode a 16-bit word.

    Raises UnknownOpcode when the value is not a word or its opcode nibble
    is undefined, and UnknownSubFunction when the low 12 bits of a
    non-addressed opcode select no defined operation.
    """
    if not isinstance(word, int) or not 0 <= word <= WORD_MASK:
        raise UnknownOpcode(word)
    try:
        opcode = Opcode(word >> 12)
    except ValueError:
        raise UnknownOpcode(word) from None
    low = word & ADDRESS_MASK

    if opcode in ADDRESSED:
        return Instruction(opcode, address=low)

    if opcode is Opcode.IO:
        try:
            return Instruction(opcode, io=IoOp(low))
        except ValueError:
            raise UnknownSubFunction(word) from None

    if opcode is Opcode.SHIFT:
        if low & SHIFT_RESERVED_BITS:
            raise UnknownSubFunction(word)
        return Instruction(opcode, shift=ShiftOp(low >> 10), amount=low & SHIFT_AMOUNT_MASK)

    if low:
        raise UnknownSubFunction(word)
    return Instruction(opcode)


def encode(ins: Instruction) -> int:
    """Encode an instruction as its canonical 16-bit word."""
    word = ins.opcode.value << 12
    if ins.opcode in ADDRESSED:
        word |= ins.address
    elif ins.opcode is Opcode.IO:
        word |= ins.io.value
    elif ins.opcode is Opcode.SHIFT:
        word |= (ins.shift.value << 10) | ins.amount
    return word


# ──────────────────────────────────────────────
# Word serialization
# ──────────────────────────────────────────────

def word_to_hex(word: int) -> str:
    """Big-endian hex listing form: 'c002'."""
    return f"{word & WORD_MASK:0{HEX_DIGITS}x}"


def hex_to_word(text: str) -> int:
    """Parse exactly four hex digits. Raises ValueError otherwise."""
    if len(text) != HEX_DIGITS or any(ch not in '0123456789abcdefABCDEF' for ch in text):
        raise ValueError(f"expected {HEX_DIGITS} hex digits, got {text!r}")
    return int(text, 16)


def word_to_bytes(word: int) -> bytes:
    """Binary file form: low byte first."""
    return struct.pack('<H', word & WORD_MASK)


def bytes_to_word(data: bytes) -> int:
    """Inverse of word_to_bytes. Raises ValueError unless given exactly 2 bytes."""
    if len(data) != 2:
        raise ValueError(f"a word is 2 bytes, got {len(data)}")
    return struct.unpack('<H', bytes(data))[0]
