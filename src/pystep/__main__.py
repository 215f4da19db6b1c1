import argparse
import logging
import sys
from pathlib import Path

from .lib.inputs import StdinInputProvider
from .main import Interpreter


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m pystep",
        usage="python -m pystep [--trace] [--predict] [--verbose] <script.py>",
    )
    parser.add_argument("script")
    parser.add_argument("--trace", action="store_true", help="print the highlighted line after each step")
    parser.add_argument("--predict", action="store_true", help="quiz mode: guess each assigned value")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--step-limit", type=int, default=None)
    return parser


def _trace(interpreter: Interpreter, lines: list[str]) -> None:
    highlight = interpreter.state.statement_highlight()
    if highlight is None:
        return
    line = highlight["start_line"]
    text = lines[line - 1].strip() if 0 < line <= len(lines) else ""
    print(f"[step {interpreter.current_step:>4}] line {line}: {text}", file=sys.stderr)


def _ask(interpreter: Interpreter) -> None:
    state = interpreter.state
    print(f"predict {state.prediction_variable} = ", end="", file=sys.stderr, flush=True)
    guess = sys.stdin.readline()
    interpreter.submit_prediction(state.prediction_variable, guess.rstrip("\n"))
    result = interpreter.last_prediction
    verdict = "correct" if result["is_correct"] else f"wrong, it was {result['correct_value']!r}"
    print(verdict, file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args_list = sys.argv[1:] if argv is None else argv
    try:
        args = parser.parse_args(args_list)
    except SystemExit as exc:
        return int(exc.code)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    script_path = Path(args.script).resolve()
    if not script_path.is_file():
        print(f"pystep: script not found: {script_path}", file=sys.stderr)
        return 2

    source = script_path.read_text()
    interpreter = Interpreter(
        prediction_mode=args.predict,
        input_provider=StdinInputProvider(),
        step_limit=args.step_limit,
    )
    if not interpreter.compile(source, filename=str(script_path)):
        print(interpreter.parse_error, file=sys.stderr)
        return 2

    lines = source.splitlines()
    printed = 0
    while True:
        moved = interpreter.step_forward()
        outputs = interpreter.state.outputs
        for text in outputs[printed:]:
            print(text)
        printed = len(outputs)
        if args.trace and moved:
            _trace(interpreter, lines)
        if interpreter.state.waiting_for_prediction:
            _ask(interpreter)
            continue
        if not moved:
            break

    if interpreter.state.error is not None:
        print(str(interpreter.state.error), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
