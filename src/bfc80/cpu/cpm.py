"""
CP/M 2.2 Runtime Contract
=========================

Fixed addresses and BDOS function numbers that generated programs rely on.

Memory map of a running program:

    +-------------+-----------------+----------------------+-----+------+------+
    | $0000-$00FF | code            | cells (memory_size)  | ... | BDOS | BIOS |
    +-------------+-----------------+----------------------+-----+------+------+
    | Low storage |         Transient Program Area (TPA)         |  resident  |

A .COM file is loaded at LOAD_BASE. A JP to WARM_BOOT returns to the CCP.
BDOS services are requested with the function number in C and a CALL to
BDOS_ENTRY; the BDOS does not preserve HL.
"""

LOAD_BASE = 0x0100          # .COM files load at the start of the TPA
WARM_BOOT = 0x0000          # JP 0 reloads the CCP
BDOS_ENTRY = 0x0005         # CALL 5 enters the BDOS

CONSOLE_INPUT = 1           # C=1: read a byte into A (echoed by CP/M)
CONSOLE_OUTPUT = 2          # C=2: write the byte in E

ADDRESS_SPACE = 0x10000

CR = 0x0D
LF = 0x0A

# Conventional Brainfuck tape length. Cells past it are addressable but
# not zeroed by the preamble.
DEFAULT_MEMORY_SIZE = 30000
