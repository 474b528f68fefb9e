"""Opcodes, operation kinds and operand sizes of the assembly language."""

from enum import Enum, auto


class MSize(Enum):
    """Width of a scalar memory access, in bytes."""

    ONE = 1
    TWO = 2
    FOUR = 4
    EIGHT = 8

    def nbytes(self):
        return self.value


class Size(Enum):
    """Bit width of an arithmetic operation."""

    I1 = 1
    I8 = 8
    I16 = 16
    I32 = 32
    I64 = 64

    def bits(self):
        return self.value


class VSize(Enum):
    """Number of 8-byte lanes in a vector memory access."""

    V2 = 2
    V4 = 4
    V8 = 8

    def lanes(self):
        return self.value


class Opcode(Enum):
    MALLOC = auto()
    FREE = auto()
    LOAD = auto()
    STORE = auto()
    VLOAD = auto()
    VSTORE = auto()
    COOL = auto()
    RET = auto()
    BR_UNCOND = auto()
    BR_COND = auto()
    SWITCH = auto()
    BOP = auto()
    SELECT = auto()
    CALL = auto()
    ASSERT = auto()
    READ = auto()
    WRITE = auto()


class BopKind(Enum):
    """Binary operations and comparisons, valued by their mnemonic."""

    UDIV = "udiv"
    SDIV = "sdiv"
    UREM = "urem"
    SREM = "srem"
    MUL = "mul"
    SHL = "shl"
    LSHR = "lshr"
    ASHR = "ashr"
    AND = "and"
    OR = "or"
    XOR = "xor"
    ADD = "add"
    SUB = "sub"
    EQ = "eq"
    NE = "ne"
    UGT = "ugt"
    UGE = "uge"
    ULT = "ult"
    ULE = "ule"
    SGT = "sgt"
    SGE = "sge"
    SLT = "slt"
    SLE = "sle"

    def is_signed(self):
        return self in _SIGNED

    def is_shift(self):
        return self in _SHIFTS


_SIGNED = frozenset(
    {
        BopKind.ASHR,
        BopKind.SDIV,
        BopKind.SREM,
        BopKind.SGT,
        BopKind.SGE,
        BopKind.SLT,
        BopKind.SLE,
    }
)
_SHIFTS = frozenset({BopKind.SHL, BopKind.LSHR, BopKind.ASHR})