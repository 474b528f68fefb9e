"""Instructions of the assembly language and how each one executes."""

import re
import sys
from collections import deque
from dataclasses import dataclass, field
from typing import ClassVar

from .costs import Cost
from .errors import AsmAssertionError, AsmRuntimeError
from .isa import BopKind, MSize, Opcode, Size, VSize
from .memory import Memory
from .regfile import A1, MASK64, REG_NONE, RegFile, Value


@dataclass
class ExecContext:
    """Everything an instruction may touch while it executes."""

    regfile: RegFile
    memory: Memory
    stdin: object = field(default_factory=lambda: sys.stdin)
    stdout: object = field(default_factory=lambda: sys.stdout)
    _pending: deque = field(default_factory=deque, init=False, repr=False)

    @property
    def counters(self):
        return self.memory.counters

    def read_token(self):
        """Return the next whitespace-separated input token, or "" at end of input."""
        while not self._pending:
            line = self.stdin.readline()
            if not line:
                return ""
            self._pending.extend(line.split())
        return self._pending.popleft()


_UNSIGNED = re.compile(r"\s*([+-]?)([0-9]+)")


def _parse_unsigned(token):
    """Parse a decimal integer prefix the way a C ``stoull`` call does."""
    match = _UNSIGNED.match(token)
    if match is None:
        raise ValueError(f"not a number: {token!r}")
    magnitude = int(match.group(2))
    if magnitude > MASK64:
        raise ValueError(f"out of range: {token!r}")
    if match.group(1) == "-":
        return (-magnitude) & MASK64
    return magnitude


def _to_signed(val):
    return val - (1 << 64) if val >> 63 else val


def _operand(kind, size, val):
    bits = size.bits()
    low = val & ((1 << bits) - 1)
    if kind.is_signed() and low >> (bits - 1):
        return (low - (1 << bits)) & MASK64
    return low


def _trunc_div(a, b):
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def _sdiv(a, b):
    return _trunc_div(_to_signed(a), _to_signed(b))


def _srem(a, b):
    sa, sb = _to_signed(a), _to_signed(b)
    return sa - sb * _trunc_div(sa, sb)


_BOP_FUNCS = {
    BopKind.UDIV: lambda a, b: a // b,
    BopKind.SDIV: _sdiv,
    BopKind.UREM: lambda a, b: a % b,
    BopKind.SREM: _srem,
    BopKind.MUL: lambda a, b: a * b,
    BopKind.SHL: lambda a, b: a << b,
    BopKind.LSHR: lambda a, b: a >> b,
    BopKind.ASHR: lambda a, b: _to_signed(a) >> b,
    BopKind.AND: lambda a, b: a & b,
    BopKind.OR: lambda a, b: a | b,
    BopKind.XOR: lambda a, b: a ^ b,
    BopKind.ADD: lambda a, b: a + b,
    BopKind.SUB: lambda a, b: a - b,
    BopKind.EQ: lambda a, b: int(a == b),
    BopKind.NE: lambda a, b: int(a != b),
    BopKind.UGT: lambda a, b: int(a > b),
    BopKind.UGE: lambda a, b: int(a >= b),
    BopKind.ULT: lambda a, b: int(a < b),
    BopKind.ULE: lambda a, b: int(a <= b),
    BopKind.SGT: lambda a, b: int(_to_signed(a) > _to_signed(b)),
    BopKind.SGE: lambda a, b: int(_to_signed(a) >= _to_signed(b)),
    BopKind.SLT: lambda a, b: int(_to_signed(a) < _to_signed(b)),
    BopKind.SLE: lambda a, b: int(_to_signed(a) <= _to_signed(b)),
}

_DIVISIONS = frozenset({BopKind.UDIV, BopKind.SDIV, BopKind.UREM, BopKind.SREM})


def compute_bop(kind, size, op1, op2):
    """Apply ``kind`` to two register values at bit width ``size``."""
    a = _operand(kind, size, op1)
    b = op2 % size.bits() if kind.is_shift() else _operand(kind, size, op2)
    if kind in _DIVISIONS and b == 0:
        raise AsmRuntimeError("division by zero")
    return _BOP_FUNCS[kind](a, b) & ((1 << size.bits()) - 1)


_BOP_COST = {}
for _kind in (BopKind.UDIV, BopKind.SDIV, BopKind.UREM, BopKind.SREM, BopKind.MUL):
    _BOP_COST[_kind] = ("muldiv", Cost.MULDIV)
for _kind in (BopKind.SHL, BopKind.LSHR, BopKind.ASHR, BopKind.AND, BopKind.OR, BopKind.XOR):
    _BOP_COST[_kind] = ("logical", Cost.LOGICAL)
for _kind in (BopKind.ADD, BopKind.SUB):
    _BOP_COST[_kind] = ("addsub", Cost.ADDSUB)
for _kind in (
    BopKind.EQ, BopKind.NE, BopKind.UGT, BopKind.UGE, BopKind.ULT,
    BopKind.ULE, BopKind.SGT, BopKind.SGE, BopKind.SLT, BopKind.SLE,
):
    _BOP_COST[_kind] = ("comp", Cost.COMP)


def bop_cost(kind, counters):
    """Return the cost of ``kind`` and record it in ``counters``."""
    name, cost = _BOP_COST[kind]
    counters.add(name, cost)
    return cost


def _address(ptr, ofs, regfile):
    return (ptr.get(regfile) + ofs) & MASK64


@dataclass
class Stmt:
    """One instruction, tagged with the source line it came from."""

    line: int
    opcode: ClassVar[Opcode]

    def exec(self, ctx):
        """Execute the instruction and return its cost.

        Terminators and calls are driven by the caller, so executing them
        directly changes nothing and costs nothing.
        """
        return 0.0


# memory operations

@dataclass
class StmtMalloc(Stmt):
    lhs: int
    val: Value
    opcode = Opcode.MALLOC

    def exec(self, ctx):
        addr, cost = ctx.memory.malloc(self.val.get(ctx.regfile))
        ctx.regfile.write(self.lhs, addr)
        return cost


@dataclass
class StmtFree(Stmt):
    ptr: Value
    opcode = Opcode.FREE

    def exec(self, ctx):
        return ctx.memory.free(self.ptr.get(ctx.regfile))


@dataclass
class StmtLoad(Stmt):
    lhs: int
    size: MSize
    ptr: Value
    ofs: int
    opcode = Opcode.LOAD

    def exec(self, ctx):
        addr = _address(self.ptr, self.ofs, ctx.regfile)
        value, cost = ctx.memory.load(self.size, addr)
        ctx.regfile.write(self.lhs, value)
        return cost


@dataclass
class StmtStore(Stmt):
    size: MSize
    val: Value
    ptr: Value
    ofs: int
    opcode = Opcode.STORE

    def exec(self, ctx):
        addr = _address(self.ptr, self.ofs, ctx.regfile)
        return ctx.memory.store(self.size, addr, self.val.get(ctx.regfile))


@dataclass
class StmtVLoad(Stmt):
    size: VSize
    regs: tuple
    ptr: Value
    ofs: int
    opcode = Opcode.VLOAD

    def __post_init__(self):
        self.regs = tuple(self.regs[:self.size.lanes()])
        seen = set()
        for reg in self.regs:
            if reg == REG_NONE:
                continue
            if reg in seen:
                raise AsmRuntimeError("duplicate registers on left-hand side", self.line)
            seen.add(reg)

    @property
    def mask(self):
        return [reg != REG_NONE for reg in self.regs]

    def exec(self, ctx):
        addr = _address(self.ptr, self.ofs, ctx.regfile)
        values, cost = ctx.memory.vload(self.size, addr, self.mask)
        for reg, value in zip(self.regs, values):
            if reg != REG_NONE:
                ctx.regfile.write(reg, value)
        return cost


@dataclass
class StmtVStore(Stmt):
    size: VSize
    values: tuple
    ptr: Value
    ofs: int
    opcode = Opcode.VSTORE

    def __post_init__(self):
        self.values = tuple(self.values[:self.size.lanes()])

    def exec(self, ctx):
        addr = _address(self.ptr, self.ofs, ctx.regfile)
        lanes = [
            None if value.is_reg_none() else value.get(ctx.regfile)
            for value in self.values
        ]
        return ctx.memory.vstore(self.size, addr, lanes)


@dataclass
class StmtCool(Stmt):
    ptr: Value
    opcode = Opcode.COOL

    def exec(self, ctx):
        ctx.memory.cool(self.ptr.get(ctx.regfile))
        ctx.counters.add("cool", Cost.COOL)
        return Cost.COOL


# terminators

@dataclass
class StmtRet(Stmt):
    val: Value
    opcode = Opcode.RET


@dataclass
class StmtBrUncond(Stmt):
    bb: str
    opcode = Opcode.BR_UNCOND


@dataclass
class StmtBrCond(Stmt):
    cond: Value
    true_bb: str
    false_bb: str
    opcode = Opcode.BR_COND

    def target(self, regfile):
        """Return ``(block name, taken)`` for the current register values."""
        if self.cond.get(regfile) != 0:
            return self.true_bb, True
        return self.false_bb, False


@dataclass
class StmtSwitch(Stmt):
    cond: Value
    default_bb: str = ""
    cases: dict = field(default_factory=dict)
    opcode = Opcode.SWITCH

    def add_case(self, val, bb):
        """Add a case; return False if ``val`` already has one."""
        if val in self.cases:
            return False
        self.cases[val] = bb
        return True

    def has_case(self, val):
        return val in self.cases

    def target(self, regfile):
        return self.cases.get(self.cond.get(regfile), self.default_bb)


# operations

@dataclass
class StmtBop(Stmt):
    lhs: int
    kind: BopKind
    val1: Value
    val2: Value
    size: Size
    opcode = Opcode.BOP

    def exec(self, ctx):
        op1 = self.val1.get(ctx.regfile)
        op2 = self.val2.get(ctx.regfile)
        ctx.regfile.write(self.lhs, compute_bop(self.kind, self.size, op1, op2))
        return bop_cost(self.kind, ctx.counters)


@dataclass
class StmtSelect(Stmt):
    lhs: int
    cond: Value
    val_true: Value
    val_false: Value
    opcode = Opcode.SELECT

    def exec(self, ctx):
        cond = self.cond.get(ctx.regfile)
        on_true = self.val_true.get(ctx.regfile)
        on_false = self.val_false.get(ctx.regfile)
        ctx.regfile.write(self.lhs, on_true if cond != 0 else on_false)
        ctx.counters.add("ternary", Cost.TERNARY)
        return Cost.TERNARY


@dataclass
class StmtCall(Stmt):
    lhs: int
    fname: str
    args: list = field(default_factory=list)
    opcode = Opcode.CALL

    @property
    def nargs(self):
        return len(self.args)

    def setup_args(self, old, regfile):
        """Evaluate the arguments in ``old`` and place them in ``regfile``."""
        for offset, arg in enumerate(self.args):
            regfile.set_value(A1 + offset, arg.get(old))


@dataclass
class StmtAssert(Stmt):
    op1: Value
    op2: Value
    opcode = Opcode.ASSERT

    def exec(self, ctx):
        if self.op1.get(ctx.regfile) == self.op2.get(ctx.regfile):
            return Cost.ASSERT
        raise AsmAssertionError(self.line, str(ctx.regfile))


@dataclass
class StmtRead(Stmt):
    lhs: int
    opcode = Opcode.READ

    def exec(self, ctx):
        try:
            result = _parse_unsigned(ctx.read_token())
        except ValueError:
            raise AsmRuntimeError("invalid input", self.line) from None
        ctx.regfile.write(self.lhs, result)
        ctx.counters.add("read", Cost.CALL)
        return Cost.CALL


@dataclass
class StmtWrite(Stmt):
    lhs: int
    val: Value
    opcode = Opcode.WRITE

    def exec(self, ctx):
        ctx.stdout.write(f"{self.val.get(ctx.regfile)}\n")
        ctx.regfile.write(self.lhs, 0)
        cost = Cost.CALL + Cost.PER_ARG
        ctx.counters.add("write", cost)
        return cost