"""
Z80 CPU and CP/M Machine Unit Tests
===================================

Comprehensive tests for the emulated instruction subset, flag handling,
T-state timing and the BDOS console services.
"""

import pytest

from bfc80.emulator import CPMMachine, ExitReason, Memory, Z80, run_image
from bfc80.errors import ExecutionLimitError, UnsupportedOpcodeError


# =============================================================================
# Test Fixtures
# =============================================================================

class MockBus:
    """Simple memory bus for testing."""

    def __init__(self):
        self.memory = bytearray(65536)

    def read(self, address: int) -> int:
        return self.memory[address & 0xFFFF]

    def write(self, address: int, value: int) -> None:
        self.memory[address & 0xFFFF] = value & 0xFF

    def load(self, address: int, data: bytes) -> None:
        for i, b in enumerate(data):
            self.memory[address + i] = b


@pytest.fixture
def bus():
    return MockBus()


@pytest.fixture
def cpu(bus):
    cpu = Z80(bus)
    cpu.reset(pc=0x0100)
    cpu.sp = 0xFE00
    return cpu


def run_code(cpu, bus, code: bytes, steps: int = 1) -> None:
    bus.load(0x0100, code)
    for _ in range(steps):
        cpu.step()


# =============================================================================
# Registers
# =============================================================================

class TestRegisters:
    """Test register pairs and masking."""

    def test_pairs(self, cpu):
        cpu.hl = 0x1234
        assert (cpu.h, cpu.l) == (0x12, 0x34)
        cpu.d = 0xAB
        cpu.e = 0xCD
        assert cpu.de == 0xABCD

    def test_8bit_masking(self, cpu):
        cpu.a = 0x1FF
        assert cpu.a == 0xFF

    def test_16bit_wraparound(self, cpu):
        cpu.hl = 0x10001
        assert cpu.hl == 0x0001


# =============================================================================
# Loads and Arithmetic
# =============================================================================

class TestLoads:
    """Test load instructions."""

    def test_ld_hl_nn(self, cpu, bus):
        run_code(cpu, bus, bytes([0x21, 0x34, 0x12]))
        assert cpu.hl == 0x1234
        assert cpu.pc == 0x0103
        assert cpu.cycles == 10

    def test_ld_mem_hl_n(self, cpu, bus):
        cpu.hl = 0x2000
        run_code(cpu, bus, bytes([0x36, 0x5A]))
        assert bus.memory[0x2000] == 0x5A

    def test_ld_a_mem_hl_and_back(self, cpu, bus):
        cpu.hl = 0x2000
        bus.memory[0x2000] = 0x42
        run_code(cpu, bus, bytes([0x7E, 0x23, 0x77]), steps=3)
        assert bus.memory[0x2001] == 0x42


class TestArithmetic:
    """Test 8- and 16-bit arithmetic and flags."""

    def test_inc_mem_hl_wraps_and_sets_zero(self, cpu, bus):
        cpu.hl = 0x2000
        bus.memory[0x2000] = 0xFF
        run_code(cpu, bus, bytes([0x34]))
        assert bus.memory[0x2000] == 0x00
        assert cpu.flag_z
        assert cpu.cycles == 11

    def test_dec_mem_hl_wraps(self, cpu, bus):
        cpu.hl = 0x2000
        run_code(cpu, bus, bytes([0x35]))
        assert bus.memory[0x2000] == 0xFF
        assert cpu.flag_s
        assert not cpu.flag_z

    def test_add_a_n_carry(self, cpu, bus):
        cpu.a = 0xF0
        run_code(cpu, bus, bytes([0xC6, 0x20]))
        assert cpu.a == 0x10
        assert cpu.flag_c

    def test_add_hl_bc_wraps(self, cpu, bus):
        cpu.hl = 0x0010
        run_code(cpu, bus, bytes([0x01, 0xFC, 0xFF, 0x09]), steps=2)
        assert cpu.hl == 0x000C

    def test_or_e_zero_test(self, cpu, bus):
        cpu.de = 0x0000
        run_code(cpu, bus, bytes([0x7A, 0xB3]), steps=2)
        assert cpu.flag_z

    def test_cp_equal(self, cpu, bus):
        cpu.a = 0x0A
        run_code(cpu, bus, bytes([0xFE, 0x0A]))
        assert cpu.flag_z
        assert cpu.a == 0x0A

    def test_cp_less(self, cpu, bus):
        cpu.a = 0x05
        run_code(cpu, bus, bytes([0xFE, 0x0A]))
        assert not cpu.flag_z
        assert cpu.flag_c


# =============================================================================
# Control Flow
# =============================================================================

class TestJumps:
    """Test jumps, calls and the stack."""

    def test_jr_nz_taken(self, cpu, bus):
        cpu.flag_z = False
        run_code(cpu, bus, bytes([0x20, 0x05]))
        assert cpu.pc == 0x0107
        assert cpu.cycles == 12

    def test_jr_nz_not_taken(self, cpu, bus):
        cpu.flag_z = True
        run_code(cpu, bus, bytes([0x20, 0x05]))
        assert cpu.pc == 0x0102
        assert cpu.cycles == 7

    def test_jr_z_backwards(self, cpu, bus):
        cpu.flag_z = True
        run_code(cpu, bus, bytes([0x28, 0xFE]))
        assert cpu.pc == 0x0100

    def test_jp_z(self, cpu, bus):
        cpu.flag_z = True
        run_code(cpu, bus, bytes([0xCA, 0x00, 0x20]))
        assert cpu.pc == 0x2000

    def test_jp_z_not_taken(self, cpu, bus):
        cpu.flag_z = False
        run_code(cpu, bus, bytes([0xCA, 0x00, 0x20]))
        assert cpu.pc == 0x0103

    def test_call_and_ret(self, cpu, bus):
        bus.memory[0x0005] = 0xC9
        run_code(cpu, bus, bytes([0xCD, 0x05, 0x00]))
        assert cpu.pc == 0x0005
        assert cpu.sp == 0xFDFE
        cpu.step()
        assert cpu.pc == 0x0103
        assert cpu.sp == 0xFE00

    def test_push_pop_hl(self, cpu, bus):
        cpu.hl = 0xBEEF
        run_code(cpu, bus, bytes([0xE5, 0x21, 0x00, 0x00, 0xE1]), steps=3)
        assert cpu.hl == 0xBEEF
        assert bus.memory[0xFDFF] == 0xBE
        assert bus.memory[0xFDFE] == 0xEF


class TestExecution:
    """Test the execution loop."""

    def test_unsupported_opcode(self, cpu, bus):
        bus.load(0x0100, bytes([0x00, 0xFF]))
        cpu.step()
        with pytest.raises(UnsupportedOpcodeError) as exc_info:
            cpu.step()
        assert exc_info.value.opcode == 0xFF
        assert exc_info.value.address == 0x0101
        assert cpu.pc == 0x0101

    def test_halt_stops_execution(self, cpu, bus):
        bus.load(0x0100, bytes([0x00, 0x76]))
        cpu.execute(1000)
        assert cpu.halted
        assert cpu.pc == 0x0101

    def test_hook_can_stop(self, cpu, bus):
        bus.load(0x0100, bytes([0x00, 0x00, 0x00]))
        cpu.on_instruction = lambda pc, opcode: pc != 0x0102
        cpu.execute(1000)
        assert cpu.pc == 0x0102
        assert cpu.instructions == 2

    def test_cycle_budget(self, cpu, bus):
        bus.load(0x0100, bytes([0xC3, 0x00, 0x01]))  # JP $0100
        executed = cpu.execute(100)
        assert executed >= 100
        assert cpu.pc == 0x0100


# =============================================================================
# CP/M Machine
# =============================================================================

class TestCPMMachine:
    """Test the BDOS console services."""

    def test_console_output(self):
        # LD E,'A' / LD C,2 / CALL 5 / JP 0
        machine = CPMMachine()
        machine.load(bytes([0x1E, 0x41, 0x0E, 0x02, 0xCD, 0x05, 0x00, 0xC3, 0x00, 0x00]))
        result = machine.run()
        assert result.output == b"A"
        assert result.text == "A"
        assert result.bdos_calls == 1
        assert result.exit_reason is ExitReason.WARM_BOOT

    def test_console_input_clobbers_hl(self):
        # LD HL,$1234 / LD C,1 / CALL 5 / JP 0
        machine = CPMMachine(b"z")
        machine.load(bytes([0x21, 0x34, 0x12, 0x0E, 0x01, 0xCD, 0x05, 0x00, 0xC3, 0x00, 0x00]))
        machine.run()
        assert machine.cpu.a == ord("z")
        assert machine.cpu.hl == ord("z")

    def test_echo(self):
        machine = CPMMachine(b"q", echo=True)
        machine.load(bytes([0x0E, 0x01, 0xCD, 0x05, 0x00, 0xC3, 0x00, 0x00]))
        assert machine.run().output == b"q"

    def test_return_to_ccp(self):
        # A plain RET pops the $0000 pushed at load time
        result = run_image(bytes([0xC9]))
        assert result.exit_reason is ExitReason.WARM_BOOT

    def test_halt(self):
        result = run_image(bytes([0x76]))
        assert result.exit_reason is ExitReason.HALT

    def test_execution_limit(self):
        with pytest.raises(ExecutionLimitError):
            run_image(bytes([0xC3, 0x00, 0x01]), max_cycles=1000)

    def test_memory_dump_wraps(self):
        memory = Memory()
        memory.write(0xFFFF, 1)
        memory.write(0x0000, 2)
        assert memory.dump(0xFFFF, 2) == bytes([1, 2])
