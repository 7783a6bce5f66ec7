"""CLI entry point for the signal engine."""

from signal_engine.apps.backtester.cli import app


def main() -> None:
    """Run the signal engine CLI application."""
    app()


if __name__ == "__main__":
    main()
