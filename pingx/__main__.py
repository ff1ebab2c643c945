"""CLI entry point for running pingx as a module."""

from .main import main as run_main


def main() -> None:
    raise SystemExit(run_main())


if __name__ == "__main__":
    main()
