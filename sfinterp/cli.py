"""Command line entry point: run an assembly file and write cost logs."""

import sys
from pathlib import Path

from .errors import InterpreterError
from .parser import parse_file
from .state import State

LOG_FILE = "sf-interpreter.log"
COST_LOG_FILE = "sf-interpreter-cost.log"
USAGE = "USAGE: sf-interpreter <input assembly file>"


def format_log(returned, state):
    """Return the summary log: result, total cost, heap peak and cost breakdown."""
    lines = [
        f"Returned: {returned}",
        f"Cost: {state.cost_value:.4f}",
        f"Max heap usage (bytes): {state.max_alloced_size}",
        "",
    ]
    lines += [f"{name + ':':<14}{amount:.4f}" for name, amount in state.counters.ranked()]
    return "\n".join(lines) + "\n"


def main(argv=None):
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print(USAGE)
        return 1

    filename = args[0]
    try:
        program = parse_file(filename)
    except OSError:
        print(f"Error: cannot find {filename}")
        return 1
    except InterpreterError as err:
        print(err.describe(filename))
        return 1

    state = State(program)
    try:
        returned = state.run()
    except InterpreterError as err:
        sys.stdout.flush()
        print(err.describe(filename))
        return 1

    Path(LOG_FILE).write_text(format_log(returned, state), encoding="utf-8")
    Path(COST_LOG_FILE).write_text(state.main_cost.format(""), encoding="utf-8")
    return 0


if __name__ == "__main__":
    sys.exit(main())