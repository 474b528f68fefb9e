"""Execution of a parsed program, with a per-call tree of costs."""

import sys
from dataclasses import dataclass
from typing import Optional

from .costs import Cost, CostCounters
from .errors import AsmRuntimeError, InterpreterError
from .isa import Opcode
from .memory import Memory
from .program import Function
from .regfile import RegFile
from .stmt import ExecContext, StmtCall


class CostStack:
    """Cost spent in one function call, with the calls it made below it."""

    def __init__(self, fname):
        self.fname = fname
        self.cost = 0.0
        self.callees = []

    def add(self, cost):
        self.cost += cost

    def add_callee(self, callee):
        self.callees.append(callee)

    def _walk(self):
        """Yield ``(node, depth)`` for this node and all below it, in call order."""
        pending = [(self, 0)]
        while pending:
            node, depth = pending.pop()
            yield node, depth
            pending.extend((child, depth + 1) for child in reversed(node.callees))

    def evaluate(self):
        """Fold the cost of every callee into its caller."""
        for node, _ in reversed(list(self._walk())):
            for child in node.callees:
                node.cost += child.cost

    def format(self, indent=""):
        """Return the cost tree as text, one call per line."""
        return "".join(
            f"{indent}{'| ' * depth}{node.fname}: {node.cost:.4f}\n"
            for node, depth in self._walk()
        )


@dataclass
class _Frame:
    function: Function
    cost: CostStack
    stmts: list
    index: int = 0
    saved: Optional[RegFile] = None
    call: Optional[StmtCall] = None


_BRANCHES = frozenset({Opcode.BR_UNCOND, Opcode.BR_COND, Opcode.SWITCH})


class State:
    """Registers, memory and cost bookkeeping for running one program."""

    def __init__(self, program, stdin=None, stdout=None):
        self.program = program
        self.counters = CostCounters()
        self.memory = Memory(self.counters)
        self._ctx = ExecContext(
            RegFile(),
            self.memory,
            sys.stdin if stdin is None else stdin,
            sys.stdout if stdout is None else stdout,
        )
        self.main_cost = None

    @property
    def regfile(self):
        return self._ctx.regfile

    @property
    def cost_value(self):
        """Total cost of the run (zero before it starts)."""
        return 0.0 if self.main_cost is None else self.main_cost.cost

    @property
    def max_alloced_size(self):
        return self.memory.max_alloced_size

    def _enter(self, function, parent, saved=None, call=None):
        cost = CostStack(function.name)
        if parent is None:
            self.main_cost = cost
        else:
            parent.add_callee(cost)
        stmts = function.first_block()
        if stmts is None:
            raise AsmRuntimeError("missing first basic block")
        return _Frame(function, cost, stmts, 0, saved, call)

    def _branch(self, frame, stmt):
        regfile = self._ctx.regfile
        if stmt.opcode is Opcode.BR_UNCOND:
            name, cost, counter = stmt.bb, Cost.BRUNCOND, "bruncond"
        elif stmt.opcode is Opcode.BR_COND:
            name, taken = stmt.target(regfile)
            if taken:
                cost, counter = Cost.BRCOND_TRUE, "brcond_true"
            else:
                cost, counter = Cost.BRCOND_FALSE, "brcond_false"
        else:
            name, cost, counter = stmt.target(regfile), Cost.SWITCH, "switch"
        target = frame.function.block(name)
        if target is None:
            raise AsmRuntimeError("branching to an undefined basic block")
        frame.stmts = target
        frame.index = 0
        frame.cost.add(cost)
        self.counters.add(counter, cost)

    def _call(self, frames, frame, stmt):
        callee = self.program.function(stmt.fname)
        if callee is None:
            raise AsmRuntimeError("calling an undefined function")
        if callee.nargs != stmt.nargs:
            raise AsmRuntimeError("calling a function with incorrect number of arguments")
        old = self._ctx.regfile.copy()
        self._ctx.regfile.nargs = callee.nargs
        stmt.setup_args(old, self._ctx.regfile)
        frame.cost.add(Cost.CALL + callee.nargs * Cost.PER_ARG)
        self.counters.add("call", Cost.CALL)
        self.counters.add("call_arg", callee.nargs * Cost.PER_ARG)
        frame.index += 1
        frames.append(self._enter(callee, frame.cost, old, stmt))

    def run(self):
        """Run ``main`` to completion and return its result."""
        main = self.program.function("main")
        if main is None:
            raise AsmRuntimeError("missing main function")
        frames = [self._enter(main, None)]
        ctx = self._ctx

        while True:
            frame = frames[-1]
            stmt = frame.stmts[frame.index]
            try:
                opcode = stmt.opcode
                if opcode is Opcode.RET:
                    value = stmt.val.get(ctx.regfile)
                    frame.cost.add(Cost.RET)
                    self.counters.add("ret", Cost.RET)
                    frames.pop()
                    if not frames:
                        self.main_cost.evaluate()
                        return value
                    ctx.regfile = frame.saved
                    ctx.regfile.write(frame.call.lhs, value)
                elif opcode is Opcode.CALL:
                    self._call(frames, frame, stmt)
                    continue
                elif opcode in _BRANCHES:
                    self._branch(frame, stmt)
                else:
                    frame.cost.add(stmt.exec(ctx))
                    frame.index += 1
            except InterpreterError as err:
                if not err.line:
                    err.line = stmt.line
                raise

            top = frames[-1]
            if top.stmts[top.index].opcode is not Opcode.ASSERT:
                self.memory.advance_time()