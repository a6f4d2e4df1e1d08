"""Entry point for running vaultline as a module.

This allows running the application with:
    python -m vaultline [COMMAND] [OPTIONS]
"""

from vaultline.cli import app

if __name__ == "__main__":
    app()
