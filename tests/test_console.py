"""
Console tests: stream console and the pyserial console over loop://.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io

import pytest
from ibcm.console import SerialConsole, StreamConsole
from ibcm.errors import ConsoleError, SimulatorError
from ibcm.simulator import Simulator


def _stream(text="", prompt=False):
    return StreamConsole(io.StringIO(text), io.StringIO(), prompt=prompt)


class TestStreamConsole:

    def test_read_hex_word(self):
        console = _stream("a\n00ff\n  BEEF  \n")
        assert console.read_hex_word() == 0x000a
        assert console.read_hex_word() == 0x00ff
        assert console.read_hex_word() == 0xbeef

    def test_bad_hex_words(self):
        for text in ("12345\n", "xyz\n", "\n", "0x12\n"):
            with pytest.raises(ConsoleError, match="not a valid hexadecimal word"):
                _stream(text).read_hex_word()

    def test_read_char(self):
        console = _stream("A\nz\n")
        assert console.read_char() == ord('A')
        assert console.read_char() == ord('z')

    def test_bad_chars(self):
        for text in ("ab\n", "\n", "é\n"):
            with pytest.raises(ConsoleError, match="single ASCII character"):
                _stream(text).read_char()

    def test_end_of_input(self):
        with pytest.raises(ConsoleError, match="end of input"):
            _stream("").read_hex_word()

    def test_console_errors_are_runtime_errors(self):
        assert issubclass(ConsoleError, SimulatorError)

    def test_output_format(self):
        console = _stream()
        console.print_hex_word(0x1f)
        console.print_char(0x41)
        assert console.output.getvalue() == "001f\nA\n"

    def test_prompts(self):
        console = _stream("1\nx\n", prompt=True)
        console.read_hex_word()
        console.read_char()
        assert console.output.getvalue() == "Enter hexadecimal word: Enter ASCII character: "

    def test_no_prompts(self):
        console = _stream("1\n")
        console.read_hex_word()
        assert console.output.getvalue() == ""


class TestSerialConsole:
    """loop:// echoes everything written back to the reader."""

    def _loop(self):
        return SerialConsole("loop://", timeout=0.1)

    def test_round_trip_over_loopback(self):
        with self._loop() as console:
            console.print_hex_word(0x0abc)
            assert console.read_hex_word() == 0x0abc
            console.print_char(ord('Q'))
            assert console.read_char() == ord('Q')

    def test_empty_line_is_end_of_input(self):
        with self._loop() as console:
            with pytest.raises(ConsoleError, match="end of input"):
                console.read_hex_word()

    def test_partial_line_times_out(self):
        with self._loop() as console:
            console.ser.write(b"12")
            with pytest.raises(ConsoleError, match="timed out"):
                console.read_hex_word()

    def test_close(self):
        console = self._loop()
        console.close()
        assert not console.ser.is_open
        console.close()

    def test_open_failure(self):
        with pytest.raises(ConsoleError, match="could not open"):
            SerialConsole("/dev/does-not-exist-ibcm")

    def test_program_over_serial(self):
        with self._loop() as console:
            console.ser.write(b"0041\n")
            result = Simulator.from_source("readH\nprintC\nhalt\n", console).run()
            assert result.outputs == [0x41]
            assert console.ser.readline() == b"A\n"
