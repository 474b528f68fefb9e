"""Errors raised while parsing or running an assembly program."""


class InterpreterError(Exception):
    """Base class for every error reported by the interpreter."""

    kind = "Interpreter"

    def __init__(self, message, line=0):
        super().__init__(message)
        self.message = message
        self.line = line

    def describe(self, filename):
        """Return the one-line report printed for this error."""
        return f"{self.kind} error at {filename}:{self.line}: {self.message}"


class AsmSyntaxError(InterpreterError):
    """The assembly text is malformed."""

    kind = "Syntax"


class AsmRuntimeError(InterpreterError):
    """The program did something illegal while running."""

    kind = "Runtime"


class AsmAssertionError(InterpreterError):
    """An ``assert_eq`` instruction compared two different values."""

    kind = "Assertion"

    def __init__(self, line, registers):
        super().__init__("assertion failed", line)
        self.registers = registers

    def describe(self, filename):
        """Return the report, including the register dump."""
        return (
            f"Assertion failed at {filename}:{self.line}\n"
            f"Registers: {self.registers}"
        )