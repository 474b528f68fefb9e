# sfinterp

An interpreter for a small register-based assembly language. It runs a
program, reports what `main` returned, and adds up the cost of every
instruction it executed: arithmetic, branches, calls, and memory accesses
whose price rises with the "temperature" of recently touched memory.

## Installing

```
pip install .
```

## Running a program

```
sf-interpreter program.s
```

The same entry point can also be started with `python -m sfinterp.cli program.s`.

The program reads numbers from standard input with `call read` and prints
numbers with `call write`. When it finishes, two files are written to the
current directory:

- `sf-interpreter.log` holds the value returned by `main`, the total cost,
  the largest heap usage in bytes, and the cost broken down by instruction
  category, largest first.
- `sf-interpreter-cost.log` holds the cost tree. Each line is one function
  call with its total cost, and callees are indented with `| ` under their
  callers.

Syntax errors, runtime errors and failed `assert_eq` checks are printed with
the file name and line number, for example
`Runtime error at program.s:7: division by zero`. In these cases the command
exits with status 1 and writes no log files. A missing input file is reported
as `Error: cannot find <file>`.

## The language in brief

```
start main 0:
.entry:
  r1 = call read
  r2 = mul r1 r1 64
  call write r2
  ret 0
end main
```

- A function starts with `start <name> <nargs>:` and ends with `end <name>`.
  Its first basic block is its entry point. A program needs a `main` that
  takes no arguments.
- Registers `r1` to `r32`, read-only argument registers `arg1` to `arg16`,
  and the stack pointer `sp`, which starts at 102400.
- The stack occupies addresses below 102400. The heap starts at 204800 and is
  managed with `malloc` (sizes must be non-zero multiples of 8) and `free`.
  Accesses must be aligned to their size.
- Memory operations: `load` and `store` of 1, 2, 4 or 8 bytes, the vector
  forms `vload` and `vstore` with 2, 4 or 8 eight-byte lanes (`_` skips a
  lane), and `cool`, which resets the temperature of an 8-byte line.
- Arithmetic and comparisons (`add`, `sub`, `mul`, `udiv`, `sdiv`, `urem`,
  `srem`, `shl`, `lshr`, `ashr`, `and`, `or`, `xor`, `icmp <cond>`) take a
  bit width of 1, 8, 16, 32 or 64. `select` chooses between two values.
- Function calls: `[reg =] call <name> <args...>`.
- Terminators: `ret`, `br`, conditional `br`, and `switch`.
- `assert_eq a b` stops the program and dumps the registers if `a != b`.
- Lines whose first non-blank character is `;` are comments.

## Using it from Python

```python
import sys

from sfinterp.parser import parse_source
from sfinterp.state import State

with open("program.s", encoding="utf-8") as handle:
    program = parse_source(handle.read())

state = State(program, sys.stdin, sys.stdout)
result = state.run()
print(result, state.cost_value, state.max_alloced_size)
print(state.main_cost.format(""))
```

`parse_file(path)` in `sfinterp.parser` reads and parses a file in one step.
`State.counters` holds the per-category totals, and `counters.ranked()` lists
them largest first. `sfinterp.cli.format_log(returned, state)` returns the text
of the summary log.

Errors are raised as `AsmSyntaxError`, `AsmRuntimeError` and
`AsmAssertionError` from `sfinterp.errors`. All three derive from
`InterpreterError`, whose `describe(filename)` gives the one-line report.