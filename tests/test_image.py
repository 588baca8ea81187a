"""
Program image tests: hex listings and binary images.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from ibcm import image
from ibcm.errors import FormatError, ProgramTooLong

PROGRAMS = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'programs')

README_WORDS = [0xc002, 0x0001, 0x1000, 0x5001, 0x1008, 0x0000]


class TestHexListing:

    def test_to_hex(self):
        assert image.to_hex(README_WORDS) == "c002\n0001\n1000\n5001\n1008\n0000\n"
        assert image.to_hex([]) == ""

    def test_parse_plain(self):
        assert image.parse_hex("c002\n0001\n1000\n5001\n1008\n0000\n") == README_WORDS

    def test_annotations_and_comments_are_ignored(self):
        text = (
            "// the README program\n"
            "c002  000  jmp start\n"
            "0001  001  one: dw 1\n"
            "   // indented comment\n"
            "1000  002  start: readH\n"
        )
        assert image.parse_hex(text) == [0xc002, 0x0001, 0x1000]

    def test_uppercase_digits(self):
        assert image.parse_hex("C002\nFFFF\n") == [0xc002, 0xffff]

    def test_trailing_blank_lines_allowed(self):
        assert image.parse_hex("c002\n0000\n\n\n") == [0xc002, 0x0000]

    def test_blank_line_inside_stream(self):
        with pytest.raises(FormatError, match="line 2") as info:
            image.parse_hex("c002\n\n0000\n")
        assert info.value.line_num == 2

    def test_bad_tokens(self):
        for bad in ("c02\n", "c0022\n", "xyzw\n", "0x12\n"):
            with pytest.raises(FormatError, match="line 1"):
                image.parse_hex(bad)

    def test_bad_token_line_number(self):
        with pytest.raises(FormatError) as info:
            image.parse_hex("0000\n// note\n12g4\n")
        assert info.value.line_num == 3

    def test_only_newline_ends_a_line(self):
        text = "c002  jmp start\u2028(see below)\n0001\x0c\n"
        assert image.parse_hex(text) == [0xc002, 0x0001]

    def test_crlf_listing(self):
        assert image.parse_hex("c002\r\n0000\r\n\r\n") == [0xc002, 0x0000]

    def test_split_lines(self):
        assert image.split_lines("a\r\nb\x0cc\n") == ["a", "b\x0cc"]
        assert image.split_lines("a\nb") == ["a", "b"]
        assert image.split_lines("") == []

    def test_too_long(self):
        with pytest.raises(ProgramTooLong):
            image.parse_hex("0000\n" * 4097)
        assert len(image.parse_hex("0000\n" * 4096)) == 4096

    def test_sum_listing_file(self):
        with open(os.path.join(PROGRAMS, 'sum.ibcm')) as f:
            words = image.parse_hex(f.read())
        assert len(words) == 24
        assert words[0] == 0x1000
        assert words[0x0f] == 0xc006


class TestBinaryImage:

    def test_to_binary(self):
        assert image.to_binary(README_WORDS) == bytes.fromhex("02c0 0100 0010 0150 0810 0000")

    def test_parse(self):
        data = bytes.fromhex("02c0 0100 0010 0150 0810 0000")
        assert image.parse_binary(data) == README_WORDS
        assert image.parse_binary(b"") == []

    def test_odd_length(self):
        with pytest.raises(FormatError, match="offset 0x4") as info:
            image.parse_binary(b"\x02\xc0\x01\x00\x00")
        assert info.value.offset == 4

    def test_too_long(self):
        with pytest.raises(ProgramTooLong):
            image.parse_binary(b"\x00" * (2 * 4097))

    def test_formats_agree(self):
        words = image.parse_hex(image.to_hex(README_WORDS))
        assert image.parse_binary(image.to_binary(words)) == README_WORDS
