"""
IBCM Toolkit — Machine / Tool Configuration
===========================================

Constants shared by the assembler, the simulator and the front ends.
The machine figures come from the IBCM documentation (4096 words of
16-bit memory, 12-bit address field); the rest are tool defaults.
"""

# =============================================================================
#  MACHINE
# =============================================================================
WORD_BITS = 16
WORD_MASK = 0xFFFF
SIGN_BIT = 0x8000

ADDRESS_BITS = 12
ADDRESS_MASK = 0x0FFF

MEMORY_SIZE = 4096        # one slot per 12-bit address


# =============================================================================
#  FILE FORMATS
# =============================================================================
DEFAULT_OUTPUT = "ibcm.out"
HEX_DIGITS = 4            # one word per listing line
COMMENT = "//"

ASM_EXTENSIONS = (".ibcmasm", ".asm")
BINARY_EXTENSIONS = (".bin",)


# =============================================================================
#  CONSOLE / SERIAL
# =============================================================================
PROMPT_HEX = "Enter hexadecimal word: "
PROMPT_CHAR = "Enter ASCII character: "

SERIAL_BAUD = 9600
SERIAL_TIMEOUT = 1.0      # seconds per readline


# =============================================================================
#  DEBUGGER
# =============================================================================
DUMP_ROW_WORDS = 8
DEBUG_PROMPT = "ibcm> "
