"""
IBCM Toolkit — Execution Engine

Execution model (one step):
  1. Stop early if the machine is already halted (ALREADY_HALTED)
  2. Fetch memory[pc] into ir (pc past the end of memory -> OutOfBounds)
  3. Decode via the instruction codec (failure -> IllegalInstruction,
     pc left pointing at the bad word)
  4. pc += 1, except for halt, which leaves pc on the halt word
  5. Execute: registers, memory and console I/O are updated; jumps
     overwrite pc; halt sets halted

Termination reasons:
  - HALT:            a halt instruction executed
  - ALREADY_HALTED:  step requested on a halted machine (no-op)
  - STEPS:           run_steps() used up its step budget

Running off the end of a loaded image is not special-cased: the words after
it are zero and word 0000 decodes to halt, so the last instruction of an
image runs exactly once.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from . import image
from .config import SIGN_BIT, WORD_MASK
from .console import Console, StreamConsole
from .errors import DecodeError, IllegalInstruction, OutOfBounds
from .instruction import Instruction, IoOp, Opcode, ShiftOp, decode
from .machine import MachineState, Registers

log = logging.getLogger(__name__)


class StopReason(Enum):
    HALT = 'HALT'
    ALREADY_HALTED = 'ALREADY_HALTED'
    STEPS = 'STEPS'


@dataclass(frozen=True)
class StepOutcome:
    """Result of one step.

    reason is None while the machine keeps running. output holds the
    value a printH (word) or printC (byte) instruction wrote.
    """
    reason: Optional[StopReason]
    address: Optional[int] = None
    instruction: Optional[Instruction] = None
    output: Optional[int] = None

    @property
    def halted(self) -> bool:
        return self.reason in (StopReason.HALT, StopReason.ALREADY_HALTED)


@dataclass
class RunResult:
    """Result of run() / run_steps()."""
    steps: int
    reason: StopReason
    outputs: List[int] = field(default_factory=list)

    @property
    def halted(self) -> bool:
        return self.reason in (StopReason.HALT, StopReason.ALREADY_HALTED)


@dataclass(frozen=True)
class TraceEntry:
    """One backtrace line: the word at an address and its decoding."""
    address: int
    word: int
    instruction: Optional[Instruction]
    error: Optional[str] = None

    def __str__(self) -> str:
        text = str(self.instruction) if self.instruction is not None else f"<{self.error}>"
        return f"(@ {self.address:03x}) {self.word:04x}  {text}"


class Simulator:
    """IBCM machine simulator.

    Usage:
        sim = Simulator.from_source(asm_text)
        sim.console = StreamConsole(prompt=False)
        result = sim.run()
        sim.registers().acc
    """

    def __init__(self, state: Union[MachineState, Iterable[int], None] = None,
                 console: Optional[Console] = None):
        if state is None:
            state = MachineState()
        elif not isinstance(state, MachineState):
            state = MachineState.from_words(state)
        self.state = state
        self.console = console if console is not None else StreamConsole()
        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    @classmethod
    def load(cls, words: Iterable[int], console: Optional[Console] = None) -> 'Simulator':
        """Image at address 0, rest of memory zero, registers cleared."""
        return cls(MachineState.from_words(words), console)

    @classmethod
    def from_hex(cls, text: str, console: Optional[Console] = None) -> 'Simulator':
        return cls.load(image.parse_hex(text), console)

    @classmethod
    def from_binary(cls, data: bytes, console: Optional[Console] = None) -> 'Simulator':
        return cls.load(image.parse_binary(data), console)

    @classmethod
    def from_source(cls, source: str, console: Optional[Console] = None) -> 'Simulator':
        from .assembler import assemble
        return cls.load(assemble(source).words, console)

    # ══════════════════════════════════════════════
    # Queries (no mutation)
    # ══════════════════════════════════════════════

    @property
    def memory(self) -> Tuple[int, ...]:
        return tuple(self.state.memory)

    @property
    def is_halted(self) -> bool:
        return self.state.halted

    def registers(self) -> Registers:
        return self.state.snapshot()

    def dump(self, amt: int) -> List[int]:
        """The first amt words of memory, wherever pc is."""
        if not 0 <= amt <= self.state.size:
            raise ValueError(f"can only dump 0..{self.state.size} words, not {amt}")
        return self.state.memory[:amt]

    def peek_decoded(self, address: int) -> Instruction:
        """Decode the word at address. Raises DecodeError if it is not an instruction."""
        if not 0 <= address < self.state.size:
            raise OutOfBounds(address, f"address {address} is outside memory")
        return decode(self.state.read(address))

    def current_instruction(self) -> Instruction:
        pc = self.state.pc
        if pc >= self.state.size:
            raise OutOfBounds(pc)
        return self.peek_decoded(pc)

    def backtrace(self) -> List[TraceEntry]:
        """The current instruction, then the target of each jump in the chain.

        Following stops at a non-jump, an undecodable word, or an address
        already shown.
        """
        entries: List[TraceEntry] = []
        address = self.state.pc
        seen = set()
        while address < self.state.size and address not in seen:
            seen.add(address)
            word = self.state.read(address)
            try:
                ins = decode(word)
            except DecodeError as e:
                entries.append(TraceEntry(address, word, None, str(e)))
                break
            entries.append(TraceEntry(address, word, ins))
            if not ins.is_jump:
                break
            address = ins.address
        return entries

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> StepOutcome:
        """Execute one instruction."""
        state = self.state
        if state.halted:
            return StepOutcome(StopReason.ALREADY_HALTED)

        pc = state.pc
        if pc >= state.size:
            raise OutOfBounds(pc)
        word = state.read(pc)
        state.ir = word
        try:
            ins = decode(word)
        except DecodeError as e:
            raise IllegalInstruction(pc, word, e) from e

        if ins.opcode is not Opcode.HALT:
            state.pc = pc + 1
        output = self._dispatch[ins.opcode](ins)
        log.debug("%03x: %04x %-12s %s", pc, word, ins, state.snapshot().display())

        reason = StopReason.HALT if state.halted else None
        return StepOutcome(reason, pc, ins, output)

    def run_steps(self, n: int) -> RunResult:
        """Step at most n times, stopping early on halt."""
        if self.state.halted:
            return RunResult(0, StopReason.ALREADY_HALTED)
        outputs: List[int] = []
        for i in range(n):
            outcome = self.step()
            if outcome.output is not None:
                outputs.append(outcome.output)
            if outcome.halted:
                return RunResult(i + 1, StopReason.HALT, outputs)
        return RunResult(n, StopReason.STEPS, outputs)

    def run(self) -> RunResult:
        """Step until halted. A program that never halts never returns."""
        if self.state.halted:
            return RunResult(0, StopReason.ALREADY_HALTED)
        outputs: List[int] = []
        steps = 0
        while True:
            outcome = self.step()
            steps += 1
            if outcome.output is not None:
                outputs.append(outcome.output)
            if outcome.halted:
                log.info("machine halted after %d step(s)", steps)
                return RunResult(steps, StopReason.HALT, outputs)

    run_to_completion = run

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ins) -> value written to output or None.
    # pc has already been advanced past the instruction (halt excepted).

    def _build_dispatch(self) -> dict:
        return {
            Opcode.HALT:  self._op_halt,
            Opcode.IO:    self._op_io,
            Opcode.SHIFT: self._op_shift,
            Opcode.LOAD:  self._op_load,
            Opcode.STORE: self._op_store,
            Opcode.ADD:   self._op_add,
            Opcode.SUB:   self._op_sub,
            Opcode.AND:   self._op_and,
            Opcode.OR:    self._op_or,
            Opcode.XOR:   self._op_xor,
            Opcode.NOT:   self._op_not,
            Opcode.NOP:   self._op_nop,
            Opcode.JMP:   self._op_jmp,
            Opcode.JMPE:  self._op_jmpe,
            Opcode.JMPL:  self._op_jmpl,
            Opcode.BRL:   self._op_brl,
        }

    def _op_halt(self, ins):
        self.state.halted = True

    def _op_io(self, ins):
        state = self.state
        if ins.io is IoOp.READ_HEX:
            state.acc = self.console.read_hex_word() & WORD_MASK
        elif ins.io is IoOp.READ_CHAR:
            state.acc = self.console.read_char() & 0xFF
        elif ins.io is IoOp.PRINT_HEX:
            self.console.print_hex_word(state.acc)
            return state.acc
        else:
            self.console.print_char(state.acc & 0xFF)
            return state.acc & 0xFF
        return None

    def _op_shift(self, ins):
        acc = self.state.acc
        n = ins.amount
        if ins.shift is ShiftOp.SHIFT_LEFT:
            acc = acc << n
        elif ins.shift is ShiftOp.SHIFT_RIGHT:
            acc = acc >> n            # logical
        elif ins.shift is ShiftOp.ROTATE_LEFT:
            acc = (acc << n) | (acc >> (16 - n))
        else:
            acc = (acc >> n) | (acc << (16 - n))
        self.state.acc = acc & WORD_MASK

    def _op_load(self, ins):
        self.state.acc = self.state.read(ins.address)

    def _op_store(self, ins):
        self.state.write(ins.address, self.state.acc)

    def _op_add(self, ins):
        self.state.acc = (self.state.acc + self.state.read(ins.address)) & WORD_MASK

    def _op_sub(self, ins):
        self.state.acc = (self.state.acc - self.state.read(ins.address)) & WORD_MASK

    def _op_and(self, ins):
        self.state.acc &= self.state.read(ins.address)

    def _op_or(self, ins):
        self.state.acc |= self.state.read(ins.address)

    def _op_xor(self, ins):
        self.state.acc ^= self.state.read(ins.address)

    def _op_not(self, ins):
        self.state.acc = ~self.state.acc & WORD_MASK

    def _op_nop(self, ins):
        pass

    def _op_jmp(self, ins):
        self.state.pc = ins.address

    def _op_jmpe(self, ins):
        if self.state.acc == 0:
            self.state.pc = ins.address

    def _op_jmpl(self, ins):
        if self.state.acc & SIGN_BIT:
            self.state.pc = ins.address

    def _op_brl(self, ins):
        # acc gets the return address (the word after the brl)
        self.state.acc = self.state.pc
        self.state.pc = ins.address
