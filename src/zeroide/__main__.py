"""Module entrypoint for `python -m zeroide`."""

from zeroide.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
