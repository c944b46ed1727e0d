import sys

from oddsarb.cli import main


def _require_python() -> None:
    if sys.version_info < (3, 9):
        raise SystemExit("oddsarb requires Python 3.9+. Please upgrade your Python runtime.")


if __name__ == "__main__":
    _require_python()
    raise SystemExit(main())
