"""Entry point for ``python -m flowdag``."""

from flowdag.cli.main import app

if __name__ == "__main__":
    app()
