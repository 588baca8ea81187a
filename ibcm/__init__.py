"""
IBCM Toolkit
============
Assembler, simulator and debugger for the IBCM (Itty Bitty Computing
Machine), the 16-bit teaching computer with 4096 words of memory and a
single accumulator.

Architecture:
    ┌──────────┐    ┌───────────┐    ┌───────────┐    ┌───────────┐
    │ .ibcmasm │───>│ Assembler │───>│  Program  │───>│ hex / bin │
    │ (source) │    │ (2 passes)│    │  (words)  │    │  (image)  │
    └──────────┘    └───────────┘    └─────┬─────┘    └─────┬─────┘
                                           v                │
                     ┌──────────┐    ┌───────────┐          │
                     │ Console  │<──>│ Simulator │<─────────┘
                     │(tty/uart)│    │ (+ state) │<──── Debugger
                     └──────────┘    └───────────┘

    - instruction.py: word <-> Instruction codec, hex/binary word forms
    - image.py:       whole-program hex listing and binary image formats
    - symbols.py:     label table used by the assembler
    - assembler.py:   two-pass assembler producing a Program
    - machine.py:     memory and registers
    - simulator.py:   fetch/decode/execute loop
    - console.py:     I/O for readH/readC/printH/printC (streams or pyserial)
    - debugger.py:    step/run/dump/status surface and interactive shell
"""

__version__ = "0.2.0"

from .errors import (
    IBCMError, AssemblerError, DuplicateLabel, DecodeError, UnknownOpcode,
    UnknownSubFunction, FormatError, ProgramTooLong, SimulatorError,
    IllegalInstruction, OutOfBounds, ConsoleError, DebuggerError,
)
from .instruction import Instruction, Opcode, IoOp, ShiftOp, decode, encode
from .symbols import SymbolTable
from .assembler import Assembler, Program, assemble
from .machine import MachineState, Registers
from .console import Console, StreamConsole, SerialConsole
from .simulator import Simulator, StopReason, StepOutcome, RunResult
from .debugger import Debugger, DebuggerShell
