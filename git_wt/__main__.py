"""Module entrypoint for `python -m git_wt`."""

from __future__ import annotations

from .cli import app


def main() -> None:
    app(prog_name="wt")


if __name__ == "__main__":
    main()
