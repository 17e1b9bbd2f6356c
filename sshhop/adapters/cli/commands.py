"""
exec / copy / run-script commands
"""
import typer
from pathlib import Path
from typing import List, Optional

from rich.progress import Progress, BarColumn, DownloadColumn, TextColumn, TransferSpeedColumn

from ...core.constants import DEFAULT_SOURCE_EXTENSIONS, EXIT_STATUS_UNSET
from ...core.exceptions import RemoteError
from ...core.logging import get_logger, get_stderr_console
from ...core.utils import list_source_files
from .connection import ConnectionOptions, open_client
from .prompts import RichPromptProvider

logger = get_logger(__name__)
stderr_console = get_stderr_console()


def _options(
    host: str,
    user: Optional[str],
    port: Optional[int],
    password: Optional[str],
    key: Optional[Path],
    passphrase: Optional[str],
    tunnel: bool,
    config: Optional[Path],
    insecure: bool,
) -> ConnectionOptions:
    return ConnectionOptions(
        host=host,
        user=user,
        port=port,
        password=password,
        key=key,
        passphrase=passphrase,
        tunnel=tunnel,
        config_file=config,
        insecure=insecure,
    )


def _fail(e: Exception) -> None:
    stderr_console.print(f"[red]Error:[/red] {e}")
    raise typer.Exit(1)


def _exit_with_status(status: int) -> None:
    if status == EXIT_STATUS_UNSET:
        stderr_console.print("[red]Error:[/red] no exit status received from remote")
        raise typer.Exit(1)
    raise typer.Exit(status)


# Shared option declarations
USER = typer.Option(None, "--user", "-u", help="Remote user (prompted if missing)")
PORT = typer.Option(None, "--port", "-p", help="SSH port for direct connections (default: 22); not allowed with --tunnel")
PASSWORD = typer.Option(None, "--password", envvar="SSHHOP_PASSWORD", help="Password (prompted if missing)")
KEY = typer.Option(None, "--key", "-i", help="Private key file")
PASSPHRASE = typer.Option(None, "--passphrase", help="Private key passphrase")
TUNNEL = typer.Option(False, "--tunnel", "-t", help="Connect through the configured gateway")
CONFIG = typer.Option(None, "--config", "-c", help="TOML config file")
INSECURE = typer.Option(False, "--insecure", help="Disable host key checking")


def exec_run(
    host: str = typer.Argument(..., help="Remote host or ~/.ssh/config alias"),
    command: str = typer.Argument(..., help="Command line to run remotely"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Give up after N seconds"),
    user: Optional[str] = USER,
    port: Optional[int] = PORT,
    password: Optional[str] = PASSWORD,
    key: Optional[Path] = KEY,
    passphrase: Optional[str] = PASSPHRASE,
    tunnel: bool = TUNNEL,
    config: Optional[Path] = CONFIG,
    insecure: bool = INSECURE,
):
    """
    Run a command remotely and stream its output.

    Exits with the remote command's exit status.

    Examples:
        sshhop exec -u deploy web01 "hostname; pwd"
        sshhop exec --tunnel -u admin 10.0.0.12 "uptime"
    """
    options = _options(host, user, port, password, key, passphrase, tunnel, config, insecure)
    try:
        with open_client(options, RichPromptProvider()) as client:
            status = client.execute_command(command, timeout=timeout)
    except RemoteError as e:
        _fail(e)
    _exit_with_status(status)


def copy_run(
    host: str = typer.Argument(..., help="Remote host or ~/.ssh/config alias"),
    remote_dir: str = typer.Argument(..., help="Remote destination directory"),
    files: Optional[List[Path]] = typer.Argument(None, help="Local files to upload"),
    from_dir: Optional[Path] = typer.Option(
        None, "--from-dir", help="Upload matching files from this directory"
    ),
    ext: Optional[List[str]] = typer.Option(
        None, "--ext", help="Extensions picked by --from-dir (default: .sh, .txt)"
    ),
    user: Optional[str] = USER,
    port: Optional[int] = PORT,
    password: Optional[str] = PASSWORD,
    key: Optional[Path] = KEY,
    passphrase: Optional[str] = PASSPHRASE,
    tunnel: bool = TUNNEL,
    config: Optional[Path] = CONFIG,
    insecure: bool = INSECURE,
):
    """
    Upload files into a remote directory, creating it if needed.

    Examples:
        sshhop copy -u deploy web01 /tmp/release app.sh notes.txt
        sshhop copy -u deploy web01 /tmp/scripts --from-dir ./scripts --ext .sh
    """
    paths = list(files or [])
    if from_dir is not None:
        try:
            paths.extend(list_source_files(from_dir, ext or DEFAULT_SOURCE_EXTENSIONS))
        except OSError as e:
            _fail(e)
    if not paths:
        stderr_console.print("[red]Error:[/red] nothing to upload")
        raise typer.Exit(1)

    options = _options(host, user, port, password, key, passphrase, tunnel, config, insecure)
    progress = Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=stderr_console,
        transient=True,
    )
    tasks = {}

    def on_progress(name: str, sent: int, total: int) -> None:
        if name not in tasks:
            tasks[name] = progress.add_task(name, total=total)
        progress.update(tasks[name], completed=sent)

    try:
        # prompts run before the progress display starts
        with open_client(options, RichPromptProvider(), progress_callback=on_progress) as client, progress:
            ok = client.copy_files(paths, remote_dir)
    except RemoteError as e:
        _fail(e)

    if not ok:
        stderr_console.print("[yellow]Warning:[/yellow] some files failed to upload")
        raise typer.Exit(1)
    stderr_console.print(f"[green]✓[/green] Uploaded {len(paths)} file(s) to {remote_dir}")


def run_script_run(
    host: str = typer.Argument(..., help="Remote host or ~/.ssh/config alias"),
    script: Path = typer.Argument(..., exists=True, dir_okay=False, help="Local script"),
    remote_dir: str = typer.Argument(..., help="Remote directory to upload the script into"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Give up after N seconds"),
    user: Optional[str] = USER,
    port: Optional[int] = PORT,
    password: Optional[str] = PASSWORD,
    key: Optional[Path] = KEY,
    passphrase: Optional[str] = PASSPHRASE,
    tunnel: bool = TUNNEL,
    config: Optional[Path] = CONFIG,
    insecure: bool = INSECURE,
):
    """
    Upload a script, fix its line endings, make it executable and run it.

    Examples:
        sshhop run-script --tunnel -u admin 10.0.0.12 ./setup.sh /tmp/script
    """
    options = _options(host, user, port, password, key, passphrase, tunnel, config, insecure)
    try:
        with open_client(options, RichPromptProvider()) as client:
            status = client.run_script(script, remote_dir, timeout=timeout)
    except RemoteError as e:
        _fail(e)
    _exit_with_status(status)


def register_commands(app: typer.Typer) -> None:
    """Register commands on the main app"""
    app.command(name="exec")(exec_run)
    app.command(name="copy")(copy_run)
    app.command(name="run-script")(run_script_run)
