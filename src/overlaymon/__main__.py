"""Run overlaymon as a program (`python -m overlaymon` or the console script)."""

import sys

from overlaymon.cli import app


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and turn its outcome into a process exit code.

    Typer ends every run with SystemExit. A message in place of a code
    (e.g. `sys.exit("...")`) counts as failure. Ctrl-C outside a command
    that handles it maps to 130.

    Args:
        argv: Arguments without the program name (sys.argv[1:] if None)
    """
    try:
        app(args=argv, prog_name="overlaymon")
    except SystemExit as e:
        if e.code is None:
            return 0
        return e.code if isinstance(e.code, int) else 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
