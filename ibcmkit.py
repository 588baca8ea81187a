#!/usr/bin/env python3
"""
ibcmkit — IBCM Toolkit
======================

One CLI for the whole toolchain:
    ibcmkit compile  — Assemble IBCM source to a hex listing or binary image
    ibcmkit execute  — Load a program and run it until it halts
    ibcmkit debug    — Load a program into the interactive debugger

Input formats are picked from the file extension unless a flag says
otherwise: .ibcmasm / .asm are assembly, .bin is a binary image, anything
else is a hex listing.

Usage:
    python ibcmkit.py <command> [options]
    python ibcmkit.py --help
    python ibcmkit.py <command> --help

Examples:
    python ibcmkit.py compile sum.ibcmasm -o sum.ibcm
    python ibcmkit.py compile sum.ibcmasm --binary -o sum.bin
    python ibcmkit.py compile sum.ibcmasm --listing
    python ibcmkit.py execute sum.ibcm
    python ibcmkit.py execute sum.ibcmasm --no-prompt < numbers.txt
    python ibcmkit.py execute sum.bin --serial /dev/ttyUSB0
    python ibcmkit.py debug sum.ibcm
"""

import argparse
import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler

from ibcm import __version__
from ibcm.assembler import Assembler
from ibcm.config import ASM_EXTENSIONS, BINARY_EXTENSIONS, DEFAULT_OUTPUT, SERIAL_BAUD
from ibcm.console import SerialConsole, StreamConsole
from ibcm.debugger import Debugger, DebuggerShell
from ibcm.errors import FormatError, IBCMError
from ibcm import image
from ibcm.simulator import Simulator

log = logging.getLogger("ibcmkit")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="ibcmkit",
        description="IBCM Toolkit — assemble, run and debug IBCM programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  compile    Assemble source to a hex listing or binary image
  execute    Run a program until it halts
  debug      Step through a program interactively
""",
    )
    parser.add_argument("--version", action="version", version=f"ibcmkit {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── compile ──────────────────────────────────────────────────────────
    p_cc = sub.add_parser("compile", help="Assemble source to a hex listing or binary image")
    p_cc.add_argument("input", help="Input .ibcmasm file (or hex listing with --hex)")
    p_cc.add_argument("-o", "--output", default=DEFAULT_OUTPUT,
                      help=f"Output file (default: {DEFAULT_OUTPUT})")
    p_cc.add_argument("--binary", action="store_true",
                      help="Write a little-endian binary image instead of a hex listing")
    # a hex listing has no source to list
    cc_mode = p_cc.add_mutually_exclusive_group()
    cc_mode.add_argument("--hex", action="store_true",
                         help="Input is a hex listing (convert it rather than assemble)")
    cc_mode.add_argument("--listing", action="store_true",
                         help="Print the assembly listing to stdout")

    # ── execute ──────────────────────────────────────────────────────────
    p_run = sub.add_parser("execute", help="Run a program until it halts")
    _add_input_args(p_run)
    p_run.add_argument("--no-prompt", action="store_true",
                       help="Do not prompt before reading input")
    p_run.add_argument("--serial", metavar="URL", default=None,
                       help="Do program I/O over a serial port (pyserial URL)")
    p_run.add_argument("--baud", type=int, default=SERIAL_BAUD,
                       help=f"Serial baud rate (default: {SERIAL_BAUD})")

    # ── debug ────────────────────────────────────────────────────────────
    p_dbg = sub.add_parser("debug", help="Step through a program interactively")
    _add_input_args(p_dbg)

    # ── Parse and dispatch ───────────────────────────────────────────────
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    if not args.command:
        parser.print_help()
        sys.exit(0)

    try:
        return COMMANDS[args.command](args)
    except (IBCMError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


def setup_logging(verbose=False):
    """Console logging on stderr: warnings by default, everything with -v."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )],
    )


def _add_input_args(p):
    p.add_argument("input", help="Program: hex listing, binary image or assembly source")
    fmt = p.add_mutually_exclusive_group()
    fmt.add_argument("--asm", action="store_true", help="Input is assembly source")
    fmt.add_argument("--binary", action="store_true", help="Input is a binary image")


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def detect_format(path, asm=False, binary=False):
    """'asm', 'binary' or 'hex' for an input file."""
    if asm:
        return "asm"
    if binary:
        return "binary"
    ext = os.path.splitext(path)[1].lower()
    if ext in ASM_EXTENSIONS:
        return "asm"
    if ext in BINARY_EXTENSIONS:
        return "binary"
    return "hex"


def read_text(path):
    """Read a UTF-8 text file; undecodable bytes are a FormatError."""
    with open(path, "rb") as f:
        data = f.read()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FormatError(f"{path} is not UTF-8 text", offset=e.start) from None


def load_program(path, fmt):
    """Read a program file as a list of words."""
    if fmt == "binary":
        with open(path, "rb") as f:
            return image.parse_binary(f.read())
    text = read_text(path)
    if fmt == "asm":
        return Assembler().assemble(text).words
    return image.parse_hex(text)


# ── compile ──────────────────────────────────────────────────────────────
def cmd_compile(args):
    text = read_text(args.input)

    if args.hex:
        words = image.parse_hex(text)
    else:
        asm = Assembler()
        words = asm.assemble(text).words
        if args.listing:
            print(asm.get_listing())

    if args.binary:
        with open(args.output, "wb") as f:
            f.write(image.to_binary(words))
    else:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(image.to_hex(words))
    log.info("wrote %d words to %s", len(words), args.output)
    print(f"Assembled {len(words)} words -> {args.output}")


# ── execute ──────────────────────────────────────────────────────────────
def cmd_execute(args):
    words = load_program(args.input, detect_format(args.input, args.asm, args.binary))

    if args.serial:
        with SerialConsole(args.serial, baudrate=args.baud) as console:
            result = Simulator.load(words, console).run()
    else:
        console = StreamConsole(prompt=not args.no_prompt)
        result = Simulator.load(words, console).run()
    log.info("halted after %d step(s)", result.steps)


# ── debug ────────────────────────────────────────────────────────────────
def cmd_debug(args):
    words = load_program(args.input, detect_format(args.input, args.asm, args.binary))
    sim = Simulator.load(words, StreamConsole())
    DebuggerShell(Debugger(sim)).cmdloop()


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND DISPATCH TABLE
# ═════════════════════════════════════════════════════════════════════════════

COMMANDS = {
    "compile": cmd_compile,
    "execute": cmd_execute,
    "debug": cmd_debug,
}


if __name__ == "__main__":
    main()
