"""Registers, the register file and instruction operands."""

import re
from dataclasses import dataclass

from .errors import AsmRuntimeError
from .memory import STACK_MAX

R1 = 0
R32 = 31
A1 = 32
A16 = 47
REG_SP = 48
REG_NONE = 49
NREGS = 49

MASK64 = (1 << 64) - 1

_REGISTER = re.compile(r"r([1-9]|1[0-9]|2[0-9]|3[0-2])|arg([1-9]|1[0-6])|sp")


def parse_register(name):
    """Return the register number for ``name``, or ``REG_NONE`` if it is not one."""
    match = _REGISTER.fullmatch(name)
    if match is None:
        return REG_NONE
    general, argument = match.groups()
    if general is not None:
        return R1 + int(general) - 1
    if argument is not None:
        return A1 + int(argument) - 1
    return REG_SP


def register_name(reg):
    """Return the assembly name of register ``reg``."""
    if R1 <= reg <= R32:
        return f"r{reg - R1 + 1}"
    if A1 <= reg <= A16:
        return f"arg{reg - A1 + 1}"
    if reg == REG_SP:
        return "sp"
    if reg == REG_NONE:
        return "_"
    raise ValueError(f"no such register: {reg}")


class RegFile:
    """General registers, read-only argument registers and the stack pointer."""

    def __init__(self):
        self._regs = [0] * NREGS
        self._regs[REG_SP] = STACK_MAX
        self.nargs = 0

    def set_value(self, reg, val):
        """Set a register without the read-only check (used to pass arguments)."""
        if reg == REG_NONE:
            return
        self._regs[reg] = val & MASK64

    def read(self, reg):
        if A1 + self.nargs <= reg <= A16:
            raise AsmRuntimeError("reading out-of-range argument")
        if reg == REG_NONE:
            raise AsmRuntimeError("reading an unknown register")
        return self._regs[reg]

    def write(self, reg, val):
        if reg == REG_NONE:
            return
        if A1 <= reg <= A16:
            raise AsmRuntimeError("writing to a read-only register")
        self._regs[reg] = val & MASK64

    def copy(self):
        other = RegFile()
        other._regs = list(self._regs)
        other.nargs = self.nargs
        return other

    def __str__(self):
        parts = [f"r{i + 1}[{self._regs[i]}]" for i in range(R1, A1)]
        parts += [f"arg{i - 15}[{self._regs[i]}]" for i in range(A1, REG_SP)]
        parts.append(f"sp[{self._regs[REG_SP]}]")
        return " ".join(parts)


@dataclass(frozen=True)
class Value:
    """An operand: either a register or a 64-bit constant."""

    is_reg: bool
    reg: int = REG_NONE
    literal: int = 0

    @classmethod
    def of_reg(cls, reg):
        return cls(True, reg, 0)

    @classmethod
    def of_const(cls, literal):
        return cls(False, REG_NONE, literal)

    def get(self, regfile):
        if self.is_reg:
            return regfile.read(self.reg)
        return self.literal

    def is_reg_none(self):
        return self.is_reg and self.reg == REG_NONE