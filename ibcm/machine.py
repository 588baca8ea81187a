"""
IBCM Toolkit — Machine State

Register model:
  acc     16-bit accumulator (arithmetic, loads, I/O)
  ir      instruction register: the last word fetched
  pc      12-bit program counter, address of the next fetch
  halted  set once a halt instruction has executed

Memory is 4096 words, one per 12-bit address. A state is owned by exactly
one Simulator; nothing here is shared or global.
"""

from dataclasses import dataclass
from typing import Iterable, List

from .config import MEMORY_SIZE, SIGN_BIT, WORD_MASK
from .errors import ProgramTooLong


@dataclass(frozen=True)
class Registers:
    """Read-only register snapshot."""
    acc: int
    ir: int
    pc: int
    halted: bool

    @property
    def acc_signed(self) -> int:
        return self.acc - 0x10000 if self.acc & SIGN_BIT else self.acc

    def display(self) -> str:
        return f"ACC={self.acc:04x} IR={self.ir:04x} PC={self.pc:03x}"


class MachineState:
    """Memory plus registers of one simulated IBCM."""

    __slots__ = ('memory', 'acc', 'ir', 'pc', 'halted', 'program_length')

    def __init__(self, size: int = MEMORY_SIZE):
        self.memory: List[int] = [0] * size
        self.acc: int = 0
        self.ir: int = 0
        self.pc: int = 0
        self.halted: bool = False
        self.program_length: int = 0      # words loaded from the image

    @classmethod
    def from_words(cls, words: Iterable[int], size: int = MEMORY_SIZE) -> 'MachineState':
        """Fresh state with the image at address 0 and zeros after it."""
        words = list(words)
        if len(words) > size:
            raise ProgramTooLong(len(words), size)
        state = cls(size)
        for addr, word in enumerate(words):
            if not 0 <= word <= WORD_MASK:
                raise ValueError(f"word {word!r} at {addr:03x} is not 16-bit")
            state.memory[addr] = word
        state.program_length = len(words)
        return state

    @property
    def size(self) -> int:
        return len(self.memory)

    def read(self, addr: int) -> int:
        return self.memory[addr]

    def write(self, addr: int, value: int):
        self.memory[addr] = value & WORD_MASK

    @property
    def acc_signed(self) -> int:
        return self.acc - 0x10000 if self.acc & SIGN_BIT else self.acc

    def snapshot(self) -> Registers:
        return Registers(self.acc, self.ir, self.pc, self.halted)
