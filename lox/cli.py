"""Lox CLI — run a .lox file, or start an interactive prompt."""

from __future__ import annotations

import logging
import sys

from .driver import (
    EXIT_NO_INPUT,
    EXIT_OK,
    EXIT_STATIC_ERROR,
    EXIT_USAGE,
    Session,
    analyze,
    format_static_error,
)
from .emit import to_source

logger = logging.getLogger("lox.cli")


USAGE: str = """\
lox [OPTIONS] [FILE]

Run a Lox program. With no FILE, start an interactive prompt.

Options:
  --emit    Parse FILE and print it back as normalized source
  --debug   Log pipeline stages to stderr
  --help    Show this help message
"""


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    emit = False
    debug = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return EXIT_OK
        elif arg == "--emit":
            emit = True
            i += 1
        elif arg == "--debug":
            debug = True
            i += 1
        elif arg.startswith("-"):
            print("lox: unknown flag '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("lox: unexpected argument '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE

    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(name)s: %(message)s",
        )

    if filepath == "":
        if emit:
            print("lox: --emit needs a file argument", file=sys.stderr)
            return EXIT_USAGE
        return run_prompt()

    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("lox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EXIT_NO_INPUT
    except OSError as e:
        print("lox: " + filepath + ": " + str(e), file=sys.stderr)
        return EXIT_NO_INPUT
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("lox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EXIT_NO_INPUT

    if emit:
        return emit_file(source)
    logger.debug("Running file", extra={"path": filepath})
    return Session(stdout=sys.stdout, stderr=sys.stderr).run(source)


def emit_file(source: str) -> int:
    program = analyze(source)
    if program.errors:
        for err in program.errors:
            print(format_static_error(err), file=sys.stderr)
        return EXIT_STATIC_ERROR
    sys.stdout.write(to_source(program.statements))
    return EXIT_OK


def run_prompt() -> int:
    """Read-eval-print loop; errors are reported and the prompt continues."""
    session = Session(stdout=sys.stdout, stderr=sys.stderr)
    while True:
        sys.stdout.write("> ")
        sys.stdout.flush()
        line = sys.stdin.readline()
        if line == "":
            sys.stdout.write("\n")
            return EXIT_OK
        session.run(line)


if __name__ == "__main__":
    sys.exit(main())
