"""
IBCM Two-Pass Assembler.

Assembles IBCM assembly text into a program image (a list of 16-bit words).

The IBCM documentation defines the machine only in terms of raw words; the
mnemonics below are the ones its example programs annotate listings with,
plus labels so that nobody has to count memory slots by hand.

Source format:
  - One statement per line: mnemonic and at most one argument, separated
    by whitespace. Indentation is ignored.
  - `//` starts a comment that runs to the end of the line.
  - A label is any run of non-whitespace text other than ':' followed by
    ':'. Labels refer to the next statement, whether they share its line
    or sit on lines of their own; several labels may name one statement.
  - Addressed instructions (load, store, add, sub, and, or, xor, jmp,
    jmpe, jmpl, brl) take a label argument; numeric addresses are not
    accepted.
  - Shift instructions (shiftL, shiftR, rotL, rotR) take a decimal shift
    amount 0..15.
  - `dw` reserves one word holding a literal of 1-4 hex digits.

Example:

          jmp     start       // skip over the data
  one:    dw      0001
  start:  readH
          add     one
          printH
          halt

assembles to c002 0001 1000 5001 1008 0000.

How the two passes work:
  Pass 1: Parse every line, check its syntax and give every statement one
          memory slot, binding pending labels to that slot's address.
  Pass 2: Encode each statement; label arguments are looked up in the
          now-complete symbol table, so forward references just work.

  Errors are collected per pass and raised together; no partial program
  is ever returned.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from . import image
from .config import COMMENT, MEMORY_SIZE
from .errors import AssemblerError, DuplicateLabel
from .instruction import ADDRESSED, MNEMONICS, Instruction, Opcode, encode, word_to_hex
from .symbols import SymbolTable

__all__ = ['Assembler', 'AssemblerError', 'Program', 'assemble']

log = logging.getLogger(__name__)

DATA = 'dw'

_HEX_LITERAL = re.compile(r'[0-9a-fA-F]{1,4}')
_DECIMAL = re.compile(r'[0-9]+')


# ──────────────────────────────────────────────
# Line Parser
# ──────────────────────────────────────────────

@dataclass
class AsmLine:
    """Parsed assembly source line."""
    labels: List[str] = field(default_factory=list)
    mnemonic: Optional[str] = None
    operands: List[str] = field(default_factory=list)
    comment: Optional[str] = None
    line_num: int = 0
    raw: str = ""
    address: Optional[int] = None     # assigned in pass 1 to statements

    @property
    def operand(self) -> Optional[str]:
        return self.operands[0] if self.operands else None


def _parse_line(line: str, line_num: int) -> AsmLine:
    """Split one line into labels, mnemonic, operands and comment."""
    result = AsmLine(line_num=line_num, raw=line)

    text = line
    pos = text.find(COMMENT)
    if pos >= 0:
        result.comment = text[pos + len(COMMENT):].strip()
        text = text[:pos]

    tokens = text.split()
    while tokens and ':' in tokens[0]:
        label, _, rest = tokens[0].partition(':')
        if not label:
            raise AssemblerError("found empty label", line_num, tokens[0])
        result.labels.append(label)
        if rest:
            tokens[0] = rest
        else:
            tokens.pop(0)

    if tokens:
        result.mnemonic = tokens[0]
        result.operands = tokens[1:]
    return result


# ──────────────────────────────────────────────
# Assembled program
# ──────────────────────────────────────────────

@dataclass
class Program:
    """Output of the assembler: the image plus its symbol table."""
    words: List[int]
    symbols: SymbolTable
    source_lines: Dict[int, int] = field(default_factory=dict)   # address -> line number

    def to_hex(self) -> str:
        return image.to_hex(self.words)

    def to_binary(self) -> bytes:
        return image.to_binary(self.words)

    @property
    def labels(self) -> Dict[str, int]:
        return self.symbols.as_dict()

    def __len__(self) -> int:
        return len(self.words)


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass IBCM assembler.

    Usage:
        asm = Assembler()
        program = asm.assemble(source_text)
        program.to_hex()
        print(asm.get_listing())
    """

    def __init__(self, capacity: int = MEMORY_SIZE):
        self.capacity = capacity
        self.symbols = SymbolTable()
        self.words: List[int] = []
        self.errors: List[AssemblerError] = []
        self._lines: List[AsmLine] = []        # every parsed line, for the listing
        self._statements: List[AsmLine] = []   # lines that occupy a memory slot

    def assemble(self, source: str) -> Program:
        """Assemble source text into a Program.

        Raises AssemblerError (carrying every problem found in the failing
        pass) if anything is wrong.
        """
        self.symbols = SymbolTable()
        self.words = []
        self.errors = []
        self._lines = []
        self._statements = []

        self._pass1(source)
        if self.errors:
            raise AssemblerError.combine(self.errors)
        log.debug("pass 1: %d statements, %d labels", len(self._statements), len(self.symbols))

        self._pass2()
        if self.errors:
            raise AssemblerError.combine(self.errors)
        log.debug("pass 2: encoded %d words", len(self.words))

        return Program(
            words=list(self.words),
            symbols=self.symbols,
            source_lines={s.address: s.line_num for s in self._statements},
        )

    def _pass1(self, source: str):
        """Pass 1: syntax checks, slot assignment and label binding."""
        pending: List[AsmLine] = []     # lines whose labels await a statement
        overflow_reported = False

        for line_num, raw in enumerate(image.split_lines(source), 1):
            try:
                line = _parse_line(raw, line_num)
            except AssemblerError as e:
                self.errors.append(e)
                continue
            self._lines.append(line)

            address = len(self._statements)
            for label in line.labels:
                try:
                    self.symbols.define(label, address, line_num)
                except DuplicateLabel as e:
                    self.errors.append(e)
            if line.labels:
                pending.append(line)

            if line.mnemonic is None:
                continue

            if address >= self.capacity and not overflow_reported:
                self.errors.append(AssemblerError(
                    f"program exceeds memory capacity of {self.capacity} words",
                    line_num, line.mnemonic))
                overflow_reported = True

            try:
                self._check_syntax(line)
            except AssemblerError as e:
                self.errors.append(e)

            line.address = address
            self._statements.append(line)
            pending = []

        for line in pending:
            for label in line.labels:
                self.errors.append(AssemblerError(
                    f"label '{label}' is not followed by a statement", line.line_num, label))

    def _check_syntax(self, line: AsmLine):
        """Reject unknown mnemonics, bad operand counts and bad literals."""
        mnem = line.mnemonic
        if len(line.operands) > 1:
            raise AssemblerError(f"unexpected argument '{line.operands[1]}'",
                                 line.line_num, line.operands[1])
        operand = line.operand

        if mnem == DATA:
            if operand is None:
                raise AssemblerError("expected data declaration after 'dw'", line.line_num, mnem)
            if not _HEX_LITERAL.fullmatch(operand):
                raise AssemblerError("invalid data declaration (must be a hexadecimal word)",
                                     line.line_num, operand)
            return

        if mnem not in MNEMONICS:
            raise AssemblerError(f"unknown instruction '{mnem}'", line.line_num, mnem)
        opcode, _ = MNEMONICS[mnem]

        if opcode in ADDRESSED:
            if operand is None:
                raise AssemblerError(f"expected argument to '{mnem}'", line.line_num, mnem)
        elif opcode is Opcode.SHIFT:
            if operand is None:
                raise AssemblerError("must specify amount to shift", line.line_num, mnem)
            if not _DECIMAL.fullmatch(operand) or int(operand) > 15:
                raise AssemblerError("invalid shift amount (must be between 0 and 15, inclusive)",
                                     line.line_num, operand)
        elif operand is not None:
            raise AssemblerError(f"unexpected argument to '{mnem}'", line.line_num, operand)

    def _pass2(self):
        """Pass 2: encode every statement with labels resolved."""
        for line in self._statements:
            try:
                self.words.append(self._encode(line))
            except AssemblerError as e:
                self.errors.append(e)

    def _encode(self, line: AsmLine) -> int:
        mnem = line.mnemonic
        operand = line.operand
        if mnem == DATA:
            return int(operand, 16)

        opcode, sub = MNEMONICS[mnem]
        if opcode in ADDRESSED:
            address = self.symbols.resolve(operand)
            if address is None:
                raise AssemblerError(f"label '{operand}' is undefined", line.line_num, operand)
            return encode(Instruction(opcode, address=address))
        if opcode is Opcode.SHIFT:
            return encode(Instruction(opcode, shift=sub, amount=int(operand)))
        if opcode is Opcode.IO:
            return encode(Instruction(opcode, io=sub))
        return encode(Instruction(opcode))

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, word, and source."""
        lines = [f"{'ADDR':>4}  {'WORD':<4}  SOURCE", "-" * 60]
        for asmline in self._lines:
            raw = asmline.raw.strip()
            if len(raw) > 48:
                raw = raw[:48]
            if asmline.address is not None and asmline.address < len(self.words):
                word = self.words[asmline.address]
                lines.append(f"{asmline.address:03x}   {word_to_hex(word)}  {raw}")
            elif raw:
                lines.append(f"{'':4}  {'':4}  {raw}")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str) -> Program:
    """Assemble source text, return the Program."""
    return Assembler().assemble(source)
