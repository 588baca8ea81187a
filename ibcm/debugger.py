"""
IBCM Toolkit — Debugger

Two layers:

  Debugger       query surface over a Simulator. Returns data, prints
                 nothing; usable from tests and other front ends.
  DebuggerShell  interactive line-oriented shell (cmd.Cmd) on top of it.

Shell commands:
  step [n]     execute the next n instructions (default 1)
  run          run the program until it halts
  dump <amt>   show the first <amt> words of memory, 8 per row
  status       registers, halted flag, current instruction and the
               chain of jump targets it leads to
  help         list commands
  quit         leave the debugger

Breakpoints and a disassembly command are not provided.
"""

import cmd
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import DEBUG_PROMPT, DUMP_ROW_WORDS
from .errors import DebuggerError, IBCMError
from .machine import Registers
from .simulator import RunResult, Simulator, TraceEntry

log = logging.getLogger(__name__)


@dataclass
class Status:
    """Everything the status command shows."""
    registers: Registers
    halted: bool
    backtrace: List[TraceEntry] = field(default_factory=list)

    @property
    def current(self) -> Optional[TraceEntry]:
        return self.backtrace[0] if self.backtrace else None

    def lines(self) -> List[str]:
        regs = self.registers
        out = [
            f"acc:    {regs.acc:04x} ({regs.acc_signed})",
            f"ir:     {regs.ir:04x}",
            f"pc:     {regs.pc:03x}",
            f"halted? {'yes' if self.halted else 'no'}",
        ]
        if self.current is None:
            out.append("current instruction: <pc is past the end of memory>")
            return out
        out.append(f"current instruction: {self.current}")
        for entry in self.backtrace[1:]:
            out.append(f"--> {entry}")
        return out


def format_dump(words: List[int], row_words: int = DUMP_ROW_WORDS) -> List[str]:
    """Rows of 'aaa: wwww wwww ...', address of the first word in front."""
    rows = []
    for start in range(0, len(words), row_words):
        chunk = words[start:start + row_words]
        rows.append(f"{start:03x}: " + ' '.join(f"{w:04x}" for w in chunk))
    return rows


class Debugger:
    """Debug operations on one simulator.

    Usage:
        dbg = Debugger(Simulator.from_source(text))
        dbg.step(3)
        dbg.status().registers.acc
    """

    def __init__(self, simulator: Simulator):
        self.sim = simulator

    def step(self, n: int = 1) -> RunResult:
        """Execute up to n instructions; stops early on halt."""
        if n < 1:
            raise DebuggerError("number of steps must be at least 1")
        self._require_running()
        return self.sim.run_steps(n)

    def run(self) -> RunResult:
        """Run until the machine halts."""
        self._require_running()
        return self.sim.run()

    def dump(self, amt: int) -> List[int]:
        if not 0 <= amt <= self.sim.state.size:
            raise DebuggerError(f"amount to dump must be between 0 and {self.sim.state.size}")
        return self.sim.dump(amt)

    def status(self) -> Status:
        return Status(self.sim.registers(), self.sim.is_halted, self.sim.backtrace())

    def _require_running(self):
        if self.sim.is_halted:
            raise DebuggerError("machine is halted")


# ══════════════════════════════════════════════
# Interactive shell
# ══════════════════════════════════════════════

class DebuggerShell(cmd.Cmd):
    """Interactive IBCM debugger."""

    intro = "IBCM debugger. Type 'help' for commands, 'quit' to exit."
    prompt = DEBUG_PROMPT

    def __init__(self, debugger: Debugger, stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        if stdin is not None:
            self.use_rawinput = False
        self.dbg = debugger

    def _print(self, text: str = ""):
        self.stdout.write(text + "\n")

    def _error(self, err):
        self._print(f"error: {err}")

    def onecmd(self, line):
        # Library errors end the command, never the session.
        try:
            return super().onecmd(line)
        except IBCMError as e:
            log.debug("command %r failed: %s", line, e)
            self._error(e)
            return False

    # -- Commands --

    def do_step(self, arg):
        """step [n]     Execute the next n instructions (default 1)."""
        args = arg.split()
        if len(args) > 1:
            raise DebuggerError("expected no more than 1 argument")
        try:
            n = int(args[0]) if args else 1
        except ValueError:
            raise DebuggerError("invalid number of steps") from None
        result = self.dbg.step(n)
        if result.halted:
            self._print(f"halted after {result.steps} step(s)")
        else:
            self._print(f"executed {result.steps} step(s)")

    def do_run(self, arg):
        """run          Run the program until it halts."""
        if arg.strip():
            raise DebuggerError("did not expect any arguments")
        result = self.dbg.run()
        self._print(f"machine halted after {result.steps} step(s)")

    def do_dump(self, arg):
        """dump <amt>   Display the contents of the first <amt> memory locations."""
        args = arg.split()
        if len(args) != 1:
            raise DebuggerError("must specify amount of memory to dump")
        try:
            amt = int(args[0])
        except ValueError:
            raise DebuggerError("invalid amount to dump") from None
        for row in format_dump(self.dbg.dump(amt)):
            self._print(row)

    def do_status(self, arg):
        """status       Show all registers and the current instruction."""
        if arg.strip():
            raise DebuggerError("did not expect any arguments")
        for line in self.dbg.status().lines():
            self._print(line)

    def do_quit(self, arg):
        """quit         Exit the debugger."""
        return True

    def do_EOF(self, arg):
        self._print()
        return True

    def default(self, line):
        self._error(f"unknown command '{line.split()[0]}'")

    def emptyline(self):
        pass
