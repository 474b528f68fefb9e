import io

from sfinterp.cli import COST_LOG_FILE, LOG_FILE, USAGE, format_log, main
from sfinterp.costs import COUNTER_NAMES
from sfinterp.parser import parse_source
from sfinterp.state import State

ADD_PROGRAM = "start main 0:\n.entry:\n  r1 = add 1 2 64\n  ret r1\nend main\n"


def _write(tmp_path, text):
    path = tmp_path / "prog.s"
    path.write_text(text)
    return path


def test_usage_without_arguments(capsys):
    assert main([]) == 1
    assert capsys.readouterr().out == USAGE + "\n"


def test_missing_file(tmp_path, capsys):
    missing = tmp_path / "missing.s"
    assert main([str(missing)]) == 1
    assert capsys.readouterr().out == f"Error: cannot find {missing}\n"


def test_run_writes_logs(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = _write(tmp_path, ADD_PROGRAM)
    assert main([str(path)]) == 0
    log = (tmp_path / LOG_FILE).read_text().splitlines()
    assert log[0] == "Returned: 3"
    assert log[2] == "Max heap usage (bytes): 0"
    assert log[3] == ""
    cost_log = (tmp_path / COST_LOG_FILE).read_text()
    assert cost_log.startswith("main: ")
    assert log[1] == "Cost: " + cost_log.split(": ")[1].strip()


def test_program_output_goes_to_stdout(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    path = _write(tmp_path, "start main 0:\n.entry:\n  call write 42\n  ret 0\nend main\n")
    assert main([str(path)]) == 0
    assert capsys.readouterr().out == "42\n"


def test_syntax_error_is_reported(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    path = _write(tmp_path, "start main 0:\n.entry:\n  bogus\nend main\n")
    assert main([str(path)]) == 1
    assert capsys.readouterr().out == f"Syntax error at {path}:3: instruction expected\n"
    assert not (tmp_path / LOG_FILE).exists()


def test_runtime_error_is_reported(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    path = _write(tmp_path, "start main 0:\n.entry:\n  r1 = udiv 1 0 64\n  ret r1\nend main\n")
    assert main([str(path)]) == 1
    assert capsys.readouterr().out == f"Runtime error at {path}:3: division by zero\n"
    assert not (tmp_path / COST_LOG_FILE).exists()


def test_assertion_failure_is_reported(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    path = _write(tmp_path, "start main 0:\n.entry:\n  assert_eq 1 2\n  ret 0\nend main\n")
    assert main([str(path)]) == 1
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == f"Assertion failed at {path}:3"
    assert lines[1].startswith("Registers: r1[0]")


def test_format_log_lists_every_counter():
    state = State(parse_source(ADD_PROGRAM), io.StringIO(), io.StringIO())
    returned = state.run()
    lines = format_log(returned, state).splitlines()
    assert lines[0] == f"Returned: {returned}"
    counter_lines = lines[4:]
    assert len(counter_lines) == len(COUNTER_NAMES)
    names = {line[:14].split(":")[0] for line in counter_lines}
    assert names == set(COUNTER_NAMES)
    amounts = [float(line[14:]) for line in counter_lines]
    assert amounts == sorted(amounts, reverse=True)