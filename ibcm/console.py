"""
IBCM Toolkit — Console (I/O collaborator)

The simulator performs readH / readC / printH / printC through a Console.
Input is line oriented:

  readH   one line holding 1-4 hexadecimal digits
  readC   one line holding exactly one ASCII character
  printH  the accumulator as 4 hex digits and a newline
  printC  the accumulator's low byte as a character and a newline

StreamConsole talks to text streams (stdin/stdout by default).
SerialConsole speaks the same protocol over a serial line through pyserial,
for driving a program from another machine or a USB-serial adapter. Any
pyserial URL works, including loop:// for testing.
"""

import logging
import re
import sys
from typing import Optional, TextIO

import serial

from .config import PROMPT_CHAR, PROMPT_HEX, SERIAL_BAUD, SERIAL_TIMEOUT
from .errors import ConsoleError

log = logging.getLogger(__name__)

_HEX_WORD = re.compile(r'[0-9a-fA-F]{1,4}')


class Console:
    """Base console: input validation shared by all transports.

    Subclasses provide _read_line() (None at end of input) and _write().
    """

    prompt = False

    def read_hex_word(self) -> int:
        if self.prompt:
            self._write(PROMPT_HEX)
        text = self._require_line().strip()
        if not _HEX_WORD.fullmatch(text):
            raise ConsoleError(f"'{text}' is not a valid hexadecimal word "
                               f"(should be 1 to 4 hexadecimal digits)")
        return int(text, 16)

    def read_char(self) -> int:
        if self.prompt:
            self._write(PROMPT_CHAR)
        text = self._require_line().strip()
        if len(text) != 1 or ord(text) > 0x7F:
            raise ConsoleError(f"expected a single ASCII character; got '{text}'")
        return ord(text)

    def print_hex_word(self, word: int):
        self._write(f"{word:04x}\n")

    def print_char(self, byte: int):
        self._write(f"{chr(byte & 0xFF)}\n")

    def _require_line(self) -> str:
        line = self._read_line()
        if line is None:
            raise ConsoleError("end of input")
        return line

    def _read_line(self) -> Optional[str]:
        raise NotImplementedError

    def _write(self, text: str):
        raise NotImplementedError


class StreamConsole(Console):
    """Console over text streams.

    Usage:
        console = StreamConsole(io.StringIO("000a\\n"), io.StringIO(), prompt=False)
    """

    def __init__(self, input: Optional[TextIO] = None, output: Optional[TextIO] = None,
                 prompt: bool = True):
        self.input = input if input is not None else sys.stdin
        self.output = output if output is not None else sys.stdout
        self.prompt = prompt

    def _read_line(self) -> Optional[str]:
        try:
            line = self.input.readline()
        except OSError as e:
            raise ConsoleError(f"could not read user input: {e}") from e
        return line if line else None

    def _write(self, text: str):
        try:
            self.output.write(text)
            self.output.flush()
        except OSError as e:
            raise ConsoleError(f"could not write to output: {e}") from e


class SerialConsole(Console):
    """Console over a serial port (pyserial).

    Usage:
        with SerialConsole('/dev/ttyUSB0', baudrate=9600) as console:
            sim = Simulator.from_hex(text, console=console)
            sim.run()
    """

    def __init__(self, url: str, baudrate: int = SERIAL_BAUD,
                 timeout: float = SERIAL_TIMEOUT, prompt: bool = False):
        self.url = url
        self.prompt = prompt
        try:
            self.ser = serial.serial_for_url(
                url,
                baudrate=baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=timeout,
                write_timeout=timeout,
            )
        except serial.SerialException as e:
            raise ConsoleError(f"could not open {url}: {e}") from e
        log.info("Opened %s @ %d baud (8N1)", url, baudrate)

    def close(self):
        if self.ser.is_open:
            self.ser.close()
            log.info("Closed %s", self.url)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _read_line(self) -> Optional[str]:
        try:
            raw = self.ser.readline()
        except serial.SerialException as e:
            raise ConsoleError(f"could not read from {self.url}: {e}") from e
        if not raw.endswith(b'\n'):
            if raw:
                raise ConsoleError(f"timed out waiting for end of line on {self.url}")
            return None
        return raw.decode('ascii', errors='replace')

    def _write(self, text: str):
        try:
            self.ser.write(text.encode('ascii', errors='replace'))
            self.ser.flush()
        except serial.SerialException as e:
            raise ConsoleError(f"could not write to {self.url}: {e}") from e
