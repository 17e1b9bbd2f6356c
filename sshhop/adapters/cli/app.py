"""
Main CLI application
"""
import typer
from pathlib import Path
from typing import Optional

from ...core.logging import setup_logging
from .commands import register_commands

app = typer.Typer(
    name="sshhop",
    add_completion=False,
    help="Run commands and copy files over SSH, directly or through a gateway",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

register_commands(app)


@app.callback()
def main(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
):
    """
    sshhop - remote execution over SSH

    Use subcommands to perform different operations:
    - exec: Run a command remotely
    - copy: Upload files to a remote directory
    - run-script: Upload and run a script
    """
    setup_logging(level=log_level, log_file=log_file)


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
