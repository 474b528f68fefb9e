import pytest

from sfinterp.errors import (
    AsmAssertionError,
    AsmRuntimeError,
    AsmSyntaxError,
    InterpreterError,
)


def test_runtime_error_describe():
    err = AsmRuntimeError("division by zero", 7)
    assert err.describe("prog.s") == "Runtime error at prog.s:7: division by zero"


def test_syntax_error_describe():
    err = AsmSyntaxError("instruction expected", 3)
    assert err.describe("a.s") == "Syntax error at a.s:3: instruction expected"


def test_line_defaults_to_zero_and_can_be_updated():
    err = AsmRuntimeError("out-of-memory")
    assert err.line == 0
    err.line = 12
    assert err.describe("x.s").endswith("x.s:12: out-of-memory")


def test_message_is_exception_text():
    err = AsmSyntaxError("missing main function", 0)
    assert str(err) == "missing main function"


def test_assertion_error_describe_has_registers():
    err = AsmAssertionError(4, "r1[0] sp[102400]")
    lines = err.describe("t.s").split("\n")
    assert lines == ["Assertion failed at t.s:4", "Registers: r1[0] sp[102400]"]


@pytest.mark.parametrize("cls", [AsmSyntaxError, AsmRuntimeError])
def test_errors_share_base_fields(cls):
    err = cls("boom", 1)
    assert isinstance(err, InterpreterError)
    assert err.message == "boom"
    assert err.line == 1
    assert err.describe("f.s").endswith("f.s:1: boom")