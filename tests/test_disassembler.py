"""
Unit Tests for the Disassembler Module
======================================

Test coverage includes:
- Every opcode of the emitted subset decodes to its Zilog mnemonic
- Relative jump target calculation
- Known-address annotations (warm boot, BDOS)
- Edge cases (unknown opcodes, truncated data, empty input)
- Disassembly of complete compiler output
"""

import pytest

from bfc80.compiler import compile_bf
from bfc80.cpu import OPCODE_TABLE, instruction_size
from bfc80.disassembler import DisassembledInstruction, Z80Disassembler


@pytest.fixture
def disasm():
    return Z80Disassembler()


# =============================================================================
# Single Instructions
# =============================================================================

class TestDisassembleOne:
    """Test decoding of individual instructions."""

    def test_implied(self, disasm):
        instr = disasm.disassemble_one(bytes([0x34]))
        assert instr.text == "INC (HL)"
        assert instr.size == 1
        assert instr.operand is None

    def test_imm8(self, disasm):
        instr = disasm.disassemble_one(bytes([0xC6, 0x05]))
        assert instr.text == "ADD A,$05"
        assert instr.operand == 0x05

    def test_imm16(self, disasm):
        instr = disasm.disassemble_one(bytes([0x01, 0xFC, 0xFF]))
        assert instr.text == "LD BC,$FFFC"
        assert instr.operand == 0xFFFC
        assert instr.raw_bytes == bytes([0x01, 0xFC, 0xFF])

    def test_relative_forward(self, disasm):
        instr = disasm.disassemble_one(bytes([0x20, 0x09]), address=0x0103)
        assert instr.text == "JR NZ,$010E"
        assert instr.operand == 0x010E

    def test_relative_backward(self, disasm):
        instr = disasm.disassemble_one(bytes([0x28, 0xF5]), address=0x0109)
        assert instr.text == "JR Z,$0100"

    def test_offset_within_data(self, disasm):
        instr = disasm.disassemble_one(bytes([0x00, 0xE5]), offset=1, address=0x0200)
        assert instr.text == "PUSH HL"
        assert instr.address == 0x0200

    @pytest.mark.parametrize("opcode", sorted(OPCODE_TABLE))
    def test_every_known_opcode_decodes(self, disasm, opcode):
        info = OPCODE_TABLE[opcode]
        data = bytes([opcode]) + bytes(info.size - 1)
        instr = disasm.disassemble_one(data)
        assert instr.mnemonic == info.mnemonic
        assert instr.size == info.size


class TestAnnotations:
    """Test comments for well-known CP/M addresses."""

    def test_bdos_call(self, disasm):
        instr = disasm.disassemble_one(bytes([0xCD, 0x05, 0x00]))
        assert instr.comment == "BDOS"
        assert str(instr).endswith("; BDOS")

    def test_warm_boot(self, disasm):
        instr = disasm.disassemble_one(bytes([0xC3, 0x00, 0x00]))
        assert instr.comment == "warm boot"

    def test_ld_is_not_annotated(self, disasm):
        instr = disasm.disassemble_one(bytes([0x21, 0x05, 0x00]))
        assert instr.comment == ""

    def test_str_format(self, disasm):
        instr = disasm.disassemble_one(bytes([0x21, 0x2F, 0x01]), address=0x0100)
        assert str(instr) == "$0100: 21 2F 01  LD HL,$012F"


class TestEdgeCases:
    """Test unknown opcodes and short input."""

    def test_unknown_opcode(self, disasm):
        instr = disasm.disassemble_one(bytes([0xFF]))
        assert instr.mnemonic == "DB"
        assert instr.text == "DB $FF"
        assert instr.size == 1

    def test_truncated_instruction(self, disasm):
        instr = disasm.disassemble_one(bytes([0xC3, 0x00]))
        assert instr.text == "DB $C3"

    def test_empty(self, disasm):
        assert disasm.disassemble(b"") == []

    def test_count_limit(self, disasm):
        assert len(disasm.disassemble(bytes(10), count=3)) == 3


# =============================================================================
# Compiler Output
# =============================================================================

class TestCompiledImages:
    """Test disassembly of whole generated images."""

    def test_empty_program(self, disasm):
        listing = disasm.disassemble(compile_bf(""), 0x0100)
        assert [i.text for i in listing] == [
            "LD HL,$0115",
            "LD DE,$7530",
            "LD (HL),$00",
            "INC HL",
            "DEC DE",
            "LD A,D",
            "OR E",
            "JP NZ,$0106",
            "LD HL,$0115",
            "JP $0000",
        ]

    def test_every_byte_decodes(self, disasm):
        code = compile_bf("++++[>+++[>++<-]<-]>>.,[.,]<<<<<")
        listing = disasm.disassemble(code, 0x0100)
        assert all(isinstance(i, DisassembledInstruction) for i in listing)
        assert not [i for i in listing if i.mnemonic == "DB"]
        assert sum(i.size for i in listing) == len(code)

    def test_format(self, disasm):
        text = disasm.format(compile_bf("+"), 0x0100)
        lines = text.splitlines()
        assert lines[0].startswith("$0100: 21 16 01")
        assert "INC (HL)" in lines[9]


class TestInstructionSize:
    """Test the opcode size lookup."""

    def test_sizes(self):
        assert instruction_size(0x34) == 1
        assert instruction_size(0x20) == 2
        assert instruction_size(0xC3) == 3

    def test_unknown_opcode(self):
        with pytest.raises(KeyError):
            instruction_size(0xFF)
