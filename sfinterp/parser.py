"""Parser for the assembly text format."""

import re
from enum import Enum, auto

from .errors import AsmSyntaxError, InterpreterError
from .isa import BopKind, MSize, Size, VSize
from .program import Function, Program
from .regfile import MASK64, REG_NONE, Value, parse_register
from .stmt import (
    StmtAssert,
    StmtBop,
    StmtBrCond,
    StmtBrUncond,
    StmtCall,
    StmtCool,
    StmtFree,
    StmtLoad,
    StmtMalloc,
    StmtRead,
    StmtRet,
    StmtSelect,
    StmtStore,
    StmtSwitch,
    StmtVLoad,
    StmtVStore,
    StmtWrite,
)


def _g(pattern):
    return f"(?:{pattern})"


_SPACE = r"\s+"
_ESPACE = r"\s*"


def _spaced(pattern):
    return _g(_ESPACE + pattern + _ESPACE)


_ASSIGN = _spaced("=")
_REG = r"(?:r(?:[1-9]|1[0-9]|2[0-9]|3[0-2])|arg(?:[1-9]|1[0-6])|sp)"
_OPT_REG = _g(_REG + "|_")
_CONST = "[0-9]+"
_VALUE = _g(_REG + "|" + _CONST)
_OPT_VALUE = _g(_VALUE + "|_")
_NAME = r"[a-zA-Z0-9\-_.]+"
_BB_NAME = _g(r"\." + _NAME)
_ARGN = "(?:[0-9]|1[0-6])"
_MSIZE = "(?:1|2|4|8)"
_SIZE = "(?:1|8|16|32|64)"
_BOP = "(?:udiv|sdiv|urem|srem|mul|shl|lshr|ashr|and|or|xor|add|sub)"
_COND = "(?:eq|ne|ugt|uge|ult|ule|sgt|sge|slt|sle)"


def _repeat(first, rest, count):
    return _g(first + _g(_SPACE + rest) + "{" + str(count - 1) + "}")


def _vload_pattern(lanes):
    first = _OPT_REG if lanes == 2 else _REG
    regs = _repeat(first, _OPT_REG, lanes)
    return _spaced(
        regs + _ASSIGN + "vload" + _SPACE + str(lanes) + _SPACE + _VALUE + _SPACE + _CONST
    )


def _vstore_pattern(lanes):
    values = _repeat(_OPT_VALUE, _OPT_VALUE, lanes)
    return _spaced(
        "vstore" + _SPACE + str(lanes) + _SPACE + values + _SPACE + _VALUE + _SPACE + _CONST
    )


_LHS = _g(_g(_REG + _ASSIGN) + "?")
_ARGS = _g(_SPACE + _VALUE) + "*"
_TABLE = _g(_SPACE + _CONST + _SPACE + _BB_NAME) + "*"

_ASSIGN_RE = re.compile(_ASSIGN)
_REG_RE = re.compile(_REG)
_CONST_RE = re.compile(_CONST)
_BLANK_OR_COMMENT = re.compile(_ESPACE + "|" + _spaced(";.*"))
_START_FUNCTION = re.compile(
    _spaced("start" + _SPACE + _NAME + _SPACE + _ARGN + _ESPACE + ":")
)
_END_FUNCTION = re.compile(_spaced("end" + _SPACE + _NAME))
_BB_START = re.compile(_spaced(_BB_NAME + _ESPACE + ":"))


def parse_const(token):
    """Parse an unsigned 64-bit decimal constant."""
    if _CONST_RE.fullmatch(token) is None or int(token) > MASK64:
        raise AsmSyntaxError("constant out of range")
    return int(token)


def parse_value(token):
    """Parse an operand: a register name or a constant."""
    if _REG_RE.fullmatch(token):
        return Value.of_reg(parse_register(token))
    return Value.of_const(parse_const(token))


def _parse_opt_value(token):
    return Value.of_reg(REG_NONE) if token == "_" else parse_value(token)


def _parse_opt_reg(token):
    return REG_NONE if token == "_" else parse_register(token)


def _tokens(instr):
    return _ASSIGN_RE.sub(" ", instr).split()


def _split_call_lhs(tokens):
    """Return the assigned register and the tokens after ``call``."""
    if _REG_RE.fullmatch(tokens[0]):
        return parse_register(tokens[0]), tokens[2:]
    return REG_NONE, tokens[1:]


def _malloc(line, t):
    return StmtMalloc(line, parse_register(t[0]), parse_value(t[2]))


def _free(line, t):
    return StmtFree(line, parse_value(t[1]))


def _load(line, t):
    return StmtLoad(
        line, parse_register(t[0]), MSize(int(t[2])), parse_value(t[3]), parse_const(t[4])
    )


def _store(line, t):
    return StmtStore(
        line, MSize(int(t[1])), parse_value(t[2]), parse_value(t[3]), parse_const(t[4])
    )


def _vload(size):
    def build(line, t):
        n = size.lanes()
        regs = tuple(_parse_opt_reg(token) for token in t[:n])
        return StmtVLoad(line, size, regs, parse_value(t[n + 2]), parse_const(t[n + 3]))

    return build


def _vstore(size):
    def build(line, t):
        n = size.lanes()
        values = tuple(_parse_opt_value(token) for token in t[2:2 + n])
        return StmtVStore(line, size, values, parse_value(t[2 + n]), parse_const(t[3 + n]))

    return build


def _cool(line, t):
    return StmtCool(line, parse_value(t[1]))


def _bop(line, t):
    return StmtBop(
        line,
        parse_register(t[0]),
        BopKind(t[1]),
        parse_value(t[2]),
        parse_value(t[3]),
        Size(int(t[4])),
    )


def _icmp(line, t):
    return StmtBop(
        line,
        parse_register(t[0]),
        BopKind(t[2]),
        parse_value(t[3]),
        parse_value(t[4]),
        Size(int(t[5])),
    )


def _select(line, t):
    return StmtSelect(
        line, parse_register(t[0]), parse_value(t[2]), parse_value(t[3]), parse_value(t[4])
    )


def _read(line, t):
    lhs, rest = _split_call_lhs(t)
    if rest[0] != "read":
        raise AsmSyntaxError("call to read function expected", line)
    return StmtRead(line, lhs)


def _write(line, t):
    lhs, rest = _split_call_lhs(t)
    if rest[0] != "write":
        raise AsmSyntaxError("call to write function expected", line)
    return StmtWrite(line, lhs, parse_value(rest[1]))


def _call(line, t):
    lhs, rest = _split_call_lhs(t)
    return StmtCall(line, lhs, rest[0], [parse_value(token) for token in rest[1:]])


def _assert(line, t):
    return StmtAssert(line, parse_value(t[1]), parse_value(t[2]))


def _ret(line, t):
    if len(t) > 1:
        return StmtRet(line, parse_value(t[1]))
    return StmtRet(line, Value.of_const(0))


def _br_uncond(line, t):
    return StmtBrUncond(line, t[1])


def _br_cond(line, t):
    return StmtBrCond(line, parse_value(t[1]), t[2], t[3])


def _switch(line, t):
    stmt = StmtSwitch(line, parse_value(t[1]))
    *pairs, default = t[2:]
    for raw, bb in zip(pairs[::2], pairs[1::2]):
        val = parse_const(raw)
        if not stmt.add_case(val, bb):
            raise AsmSyntaxError("duplicated case in switch statement", line)
    stmt.default_bb = default
    return stmt


_NORMAL = [
    (_spaced(_REG + _ASSIGN + "malloc" + _SPACE + _VALUE), _malloc),
    (_spaced("free" + _SPACE + _VALUE), _free),
    (
        _spaced(_REG + _ASSIGN + "load" + _SPACE + _MSIZE + _SPACE + _VALUE + _SPACE + _CONST),
        _load,
    ),
    (
        _spaced(
            "store" + _SPACE + _MSIZE + _SPACE + _VALUE + _SPACE + _VALUE + _SPACE + _CONST
        ),
        _store,
    ),
    (_vload_pattern(2), _vload(VSize.V2)),
    (_vload_pattern(4), _vload(VSize.V4)),
    (_vload_pattern(8), _vload(VSize.V8)),
    (_vstore_pattern(2), _vstore(VSize.V2)),
    (_vstore_pattern(4), _vstore(VSize.V4)),
    (_vstore_pattern(8), _vstore(VSize.V8)),
    (_spaced("cool" + _SPACE + _VALUE), _cool),
    (
        _spaced(_REG + _ASSIGN + _BOP + _SPACE + _VALUE + _SPACE + _VALUE + _SPACE + _SIZE),
        _bop,
    ),
    (
        _spaced(
            _REG + _ASSIGN + "icmp" + _SPACE + _COND + _SPACE + _VALUE + _SPACE + _VALUE
            + _SPACE + _SIZE
        ),
        _icmp,
    ),
    (
        _spaced(_REG + _ASSIGN + "select" + _SPACE + _VALUE + _SPACE + _VALUE + _SPACE + _VALUE),
        _select,
    ),
    (_spaced(_LHS + "call" + _SPACE + "read"), _read),
    (_spaced(_LHS + "call" + _SPACE + "write" + _SPACE + _VALUE), _write),
    (_spaced(_LHS + "call" + _SPACE + _NAME + _ARGS), _call),
    (_spaced("assert_eq" + _SPACE + _VALUE + _SPACE + _VALUE), _assert),
]

_TERMINATORS = [
    (_spaced("ret"), _ret),
    (_spaced("ret" + _SPACE + _VALUE), _ret),
    (_spaced("br" + _SPACE + _BB_NAME), _br_uncond),
    (_spaced("br" + _SPACE + _VALUE + _SPACE + _BB_NAME + _SPACE + _BB_NAME), _br_cond),
    (_spaced("switch" + _SPACE + _VALUE + _TABLE + _SPACE + _BB_NAME), _switch),
]

_NORMAL = [(re.compile(pattern), build) for pattern, build in _NORMAL]
_TERMINATORS = [(re.compile(pattern), build) for pattern, build in _TERMINATORS]


def _dispatch(table, line, instr):
    for pattern, build in table:
        if pattern.fullmatch(instr):
            return build(line, _tokens(instr))
    return None


def parse_normal_stmt(line, instr):
    """Parse a non-terminating instruction, or return None if ``instr`` is not one."""
    return _dispatch(_NORMAL, line, instr)


def parse_terminator(line, instr):
    """Parse a block terminator, or return None if ``instr`` is not one."""
    return _dispatch(_TERMINATORS, line, instr)


class _State(Enum):
    BEGIN = auto()
    START_FUNCTION = auto()
    START_BB = auto()
    NORMAL = auto()
    END_BB = auto()
    END_FUNCTION = auto()


def _start_function(instr):
    tokens = _tokens(instr)
    nargs = int(re.match(r"[0-9]+", tokens[2]).group())
    return Function(tokens[1], nargs)


def _bb_name(instr):
    return _tokens(instr)[0][:-1]


def _lines(text):
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


class _Parser:
    def __init__(self):
        self.program = Program()
        self.state = _State.BEGIN
        self.function = None
        self.bb = None
        self.stmts = None

    def _open_function(self, instr, check_duplicate):
        if not _START_FUNCTION.fullmatch(instr):
            raise AsmSyntaxError("start of a function expected")
        function = _start_function(instr)
        if function.name in ("read", "write"):
            raise AsmSyntaxError("duplicated function name")
        if not self.program.add_function(function) and check_duplicate:
            raise AsmSyntaxError("duplicated function name")
        self.function = function
        self.state = _State.START_FUNCTION

    def _statement(self, line, instr, opening):
        stmt = parse_normal_stmt(line, instr)
        if stmt is not None:
            if opening:
                self.stmts = [stmt]
                if not self.function.add_block(self.bb, self.stmts):
                    raise AsmSyntaxError("duplicated basic block")
            else:
                self.stmts.append(stmt)
            self.state = _State.NORMAL
            return
        stmt = parse_terminator(line, instr)
        if stmt is not None:
            if opening:
                self.function.add_block(self.bb, [stmt])
            else:
                self.stmts.append(stmt)
            self.state = _State.END_BB
            return
        raise AsmSyntaxError("instruction expected")

    def feed(self, line, instr):
        if self.state is _State.BEGIN:
            self._open_function(instr, check_duplicate=False)
        elif self.state is _State.START_FUNCTION:
            if not _BB_START.fullmatch(instr):
                raise AsmSyntaxError("start of a basic block expected")
            self.bb = _bb_name(instr)
            self.function.first_bb = self.bb
            self.state = _State.START_BB
        elif self.state is _State.START_BB:
            self._statement(line, instr, opening=True)
        elif self.state is _State.NORMAL:
            self._statement(line, instr, opening=False)
        elif self.state is _State.END_BB:
            if _BB_START.fullmatch(instr):
                self.bb = _bb_name(instr)
                self.state = _State.START_BB
            elif _END_FUNCTION.fullmatch(instr):
                if _tokens(instr)[1] != self.function.name:
                    raise AsmSyntaxError("unmatching function name")
                self.state = _State.END_FUNCTION
            else:
                raise AsmSyntaxError("bbname or end of function expected")
        else:
            self._open_function(instr, check_duplicate=True)


def parse_source(text):
    """Parse assembly text into a Program, raising on any syntax error."""
    parser = _Parser()
    line = 0
    for line, instr in enumerate(_lines(text), start=1):
        if _BLANK_OR_COMMENT.fullmatch(instr):
            continue
        try:
            parser.feed(line, instr)
        except InterpreterError as err:
            if not err.line:
                err.line = line
            raise

    if parser.state is not _State.END_FUNCTION:
        raise AsmSyntaxError("function not ended", line)

    main = parser.program.function("main")
    if main is None:
        raise AsmSyntaxError("missing main function")
    if main.nargs != 0:
        raise AsmSyntaxError("main function should take 0 arguments")
    return parser.program


def parse_file(path):
    """Read and parse the assembly file at ``path``."""
    with open(path, encoding="utf-8", newline="") as handle:
        return parse_source(handle.read())