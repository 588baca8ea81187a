"""
IBCM Toolkit — Exception Hierarchy

Every error raised by the library derives from IBCMError so front ends can
report them uniformly:

  IBCMError
  ├── AssemblerError          (line number + offending token)
  │   └── DuplicateLabel
  ├── DecodeError             (word that failed to decode)
  │   ├── UnknownOpcode
  │   └── UnknownSubFunction
  ├── FormatError             (hex listing / binary image input)
  ├── ProgramTooLong
  ├── SimulatorError
  │   ├── IllegalInstruction
  │   ├── OutOfBounds
  │   └── ConsoleError
  └── DebuggerError
"""

from typing import List, Optional


class IBCMError(Exception):
    """Base class for all toolkit errors."""


class AssemblerError(IBCMError):
    """Raised on assembly errors.

    A combined error (several problems found in one pass) keeps the
    individual errors in ``errors``; ``line_num`` and ``token`` then refer
    to the first of them.
    """
    def __init__(self, message: str, line_num: int = 0, token: Optional[str] = None):
        self.message = message
        self.line_num = line_num
        self.token = token
        self.errors: List["AssemblerError"] = [self]
        super().__init__(f"Line {line_num}: {message}" if line_num else message)

    @classmethod
    def combine(cls, errors: List["AssemblerError"]) -> "AssemblerError":
        if len(errors) == 1:
            return errors[0]
        first = errors[0]
        err = cls(f"{len(errors)} errors:\n" + "\n".join(str(e) for e in errors))
        err.line_num = first.line_num
        err.token = first.token
        err.errors = list(errors)
        return err


class DuplicateLabel(AssemblerError):
    """A label was defined twice."""
    def __init__(self, label: str, line_num: int = 0, first_line: int = 0):
        self.label = label
        self.first_line = first_line
        where = f" (first defined on line {first_line})" if first_line else ""
        super().__init__(f"duplicate label '{label}'{where}", line_num, label)


class DecodeError(IBCMError):
    """A word does not decode to any instruction."""
    def __init__(self, word: int, message: str):
        self.word = word
        super().__init__(message)


class UnknownOpcode(DecodeError):
    def __init__(self, word: int):
        super().__init__(word, f"unknown opcode in word {word:#06x}" if 0 <= word <= 0xFFFF
                         else f"{word} is not a 16-bit word")


class UnknownSubFunction(DecodeError):
    def __init__(self, word: int):
        super().__init__(word, f"unknown sub-function {word & 0x0FFF:#05x} "
                               f"for opcode {word >> 12:X} in word {word:04x}")


class FormatError(IBCMError):
    """Malformed hex listing or binary image."""
    def __init__(self, message: str, line_num: Optional[int] = None,
                 offset: Optional[int] = None):
        self.line_num = line_num
        self.offset = offset
        if line_num is not None:
            message = f"line {line_num}: {message}"
        elif offset is not None:
            message = f"offset {offset:#x}: {message}"
        super().__init__(message)


class ProgramTooLong(IBCMError):
    def __init__(self, length: int, capacity: int):
        self.length = length
        self.capacity = capacity
        super().__init__(f"program of {length} words does not fit in "
                         f"{capacity} words of memory")


class SimulatorError(IBCMError):
    """Fatal runtime error; the step loop stops."""


class IllegalInstruction(SimulatorError):
    def __init__(self, address: int, word: int, cause: DecodeError):
        self.address = address
        self.word = word
        self.cause = cause
        super().__init__(f"illegal instruction {word:04x} at {address:03x}: {cause}")


class OutOfBounds(SimulatorError):
    def __init__(self, pc: int, message: Optional[str] = None):
        self.pc = pc
        super().__init__(message or f"program counter {pc:#x} ran past the end of memory")


class ConsoleError(SimulatorError):
    """Input/output collaborator failure (bad input, end of input, timeout)."""


class DebuggerError(IBCMError):
    pass
