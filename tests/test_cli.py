from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

SRC = Path(__file__).resolve().parents[1] / "src"


def run_cli(*args: str, stdin: str = "") -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "pystep", *args],
        check=False,
        capture_output=True,
        text=True,
        input=stdin,
        env=env,
    )


def write_script(tmp_path: Path, source: str) -> str:
    script = tmp_path / "script.py"
    script.write_text(source)
    return str(script)


def test_module_runs_script(tmp_path: Path) -> None:
    script = write_script(tmp_path, "for i in range(3):\n    print(i * i)\n")
    proc = run_cli(script)
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout == "0\n1\n4\n"
    assert proc.stderr == ""


def test_module_reports_runtime_error(tmp_path: Path) -> None:
    script = write_script(tmp_path, "print('before')\nx = 1 / 0\n")
    proc = run_cli(script)
    assert proc.returncode == 1
    assert proc.stdout == "before\n"
    assert "ZeroDivisionError: division by zero (line 2)" in proc.stderr


def test_module_reports_parse_error(tmp_path: Path) -> None:
    script = write_script(tmp_path, "class A:\n    pass\n")
    proc = run_cli(script)
    assert proc.returncode == 2
    assert "SyntaxError: unsupported syntax: ClassDef" in proc.stderr


def test_module_requires_script_argument() -> None:
    proc = run_cli()
    assert proc.returncode == 2
    assert "usage: python -m pystep" in proc.stderr


def test_module_reports_missing_script(tmp_path: Path) -> None:
    proc = run_cli(str(tmp_path / "nope.py"))
    assert proc.returncode == 2
    assert "script not found" in proc.stderr


def test_trace_prints_lines(tmp_path: Path) -> None:
    script = write_script(tmp_path, "x = 1\nprint(x)\n")
    proc = run_cli("--trace", script)
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout == "1\n"
    assert "line 1: x = 1" in proc.stderr
    assert "line 2: print(x)" in proc.stderr


def test_predict_reads_guesses(tmp_path: Path) -> None:
    script = write_script(tmp_path, "x = 5\nprint(x)\n")
    proc = run_cli("--predict", script, stdin="5\n")
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout == "5\n"
    assert "predict x = " in proc.stderr
    assert "correct" in proc.stderr


def test_input_reads_stdin(tmp_path: Path) -> None:
    script = write_script(tmp_path, "name = input()\nprint('hi ' + name)\n")
    proc = run_cli(script, stdin="Ada\n")
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout == "hi Ada\n"
