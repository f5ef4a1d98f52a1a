"""
Command-line entry point.

Subcommands:
- eval: evaluate one expression and print the result
- batch: start the server, run a client against it on an operations file
- repl: type expressions as keyboard input to a calculator session
"""

import argparse
from multiprocessing import Process
from pathlib import Path
import sys
import time
from typing import List, Optional

from pydantic import BaseModel, Field, FilePath, ValidationError

from safe_calculator.client.client import ArithmeticClient
from safe_calculator.common.config import Settings
from safe_calculator.common.display import DEFAULT_PRECISION, error_message, format_result, round_result
from safe_calculator.common.errors import EvaluationError
from safe_calculator.common.logger import configure_logging, logger
from safe_calculator.common.parser import evaluate
from safe_calculator.server.server import ArithmeticServer
from safe_calculator.session.calculator import CalculatorSession

QUIT_COMMANDS = {"q", "quit", "exit"}


class BatchArgs(BaseModel):
    """
    Pydantic model used to validate the batch subcommand arguments.

    Attributes
    ----------
    file_path : FilePath
        Path to the file containing arithmetic operations.
    """

    file_path: FilePath


class EvalArgs(BaseModel):
    """
    Pydantic model used to validate the eval subcommand arguments.

    Attributes
    ----------
    expression : str
        Arithmetic expression to evaluate.
    precision : int
        Decimal places kept in the printed result.
    strict_decimals : bool
        Reject numbers containing two decimal points.
    """

    expression: str
    precision: int = Field(default=DEFAULT_PRECISION, ge=0, le=15)
    strict_decimals: bool = False


def run_server(output_file: Path, settings: Settings) -> None:
    """
    Start the arithmetic server.

    The server runs in its own process and listens
    for incoming socket connections.
    """
    server = ArithmeticServer(
        host=settings.host,
        port=settings.port,
        output_file=output_file,
        precision=settings.precision,
        strict_decimals=settings.strict_decimals,
    )
    server.start()


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """
    Build the argument parser, using settings for defaults.

    :param Settings settings: Environment-derived defaults
    :return: Configured parser
    """
    parser = argparse.ArgumentParser(prog="safe-calculator", description="Safe arithmetic expression calculator")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    eval_parser = subparsers.add_parser("eval", help="Evaluate a single expression")
    eval_parser.add_argument("expression", help="Arithmetic expression, e.g. '(1+2)*3'")
    eval_parser.add_argument(
        "--precision", type=int, default=settings.precision, help="Decimal places kept (default: %(default)s)"
    )
    eval_parser.add_argument(
        "--strict-decimals",
        action="store_true",
        default=settings.strict_decimals,
        help="Reject numbers containing two decimal points",
    )

    batch_parser = subparsers.add_parser("batch", help="Evaluate an operations file through the TCP server")
    batch_parser.add_argument("file_path", help="Path to the file containing arithmetic operations")

    subparsers.add_parser("repl", help="Interactive calculator session")

    return parser


def build_output_path(input_path: Path) -> Path:
    """
    Construct a safe output file path based on the input file.

    - Preserves the original folder
    - Replaces dots in extensions with underscores
    - Appends '_results.txt' at the end

    Examples
    --------
    input: resources/operations_short.7z
    output: resources/operations_short_7z_results.txt

    :param input_path: Path to the input file
    :return: Path to the output file
    """
    suffix_safe = "".join(input_path.suffixes).replace(".", "_")
    stem = input_path.name[: len(input_path.name) - len("".join(input_path.suffixes))]
    return input_path.with_name(f"{stem}{suffix_safe}_results.txt")


def run_eval(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    """
    Print the result of one expression.

    :return: Process exit status
    """
    try:
        eval_args = EvalArgs(
            expression=args.expression,
            precision=args.precision,
            strict_decimals=args.strict_decimals,
        )
    except ValidationError as exc:
        parser.error(str(exc))

    try:
        result = evaluate(eval_args.expression, strict_decimals=eval_args.strict_decimals)
    except EvaluationError as exc:
        logger.debug(f"Evaluation failed: {exc}")
        print(error_message(exc.kind))
        return 1

    print(format_result(round_result(result, eval_args.precision), eval_args.precision))
    return 0


def run_batch(parser: argparse.ArgumentParser, file_path: str, settings: Settings) -> int:
    """
    Evaluate an operations file through a server started in a child process.

    :return: Process exit status
    """
    try:
        batch_args = BatchArgs(file_path=file_path)
    except ValidationError as exc:
        parser.error(str(exc))

    input_path: Path = Path(batch_args.file_path)
    output_path: Path = build_output_path(input_path)

    server_process = Process(target=run_server, args=(output_path, settings))
    server_process.start()

    # Give the server time to start listening
    time.sleep(1)

    try:
        client = ArithmeticClient(host=settings.host, port=settings.port)
        report = client.send_file(input_path, output_path)
    finally:
        # Ensure the server is always stopped
        server_process.terminate()
        server_process.join()

    print(output_path)
    print(report.summary())
    return 0


def run_repl(settings: Settings) -> int:
    """
    Feed each typed line to a calculator session key by key, then press Enter.

    :return: Process exit status
    """
    session = CalculatorSession(precision=settings.precision, strict_decimals=settings.strict_decimals)
    while True:
        try:
            line = input(f"[{session.display}] ")
        except EOFError:
            break
        if line.strip().lower() in QUIT_COMMANDS:
            break

        for key in line:
            session.press(key)
        print(session.press("Enter"))
        if session.history:
            print(session.history)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments and dispatch to a subcommand.

    :param argv: Arguments without the program name, defaults to sys.argv[1:]
    :return: Process exit status
    """
    settings = Settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if args.command == "eval":
        return run_eval(parser, args)
    if args.command == "batch":
        return run_batch(parser, args.file_path, settings)
    return run_repl(settings)


if __name__ == "__main__":
    sys.exit(main())
