"""keepsake CLI - inspect and verify checkpoint locations."""

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from keepsake import __version__
from keepsake.config import KEEPSAKE_DIR, KeepsakeConfig, get_config
from keepsake.errors import ErrorKind, RecoveryExhausted, format_error
from keepsake.reader import CheckpointReader

console = Console()


def configure_logging(level: str) -> None:
    """Route keepsake log records to stderr through rich."""
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    root = logging.getLogger("keepsake")
    root.handlers[:] = [handler]
    root.setLevel(level.upper())


def _format_millis(value) -> str:
    if not isinstance(value, int):
        return str(value)
    ts = datetime.fromtimestamp(value / 1000, tz=UTC)
    return f"{value} ({ts.isoformat(timespec='seconds')})"


def _make_reader(ctx: click.Context) -> CheckpointReader:
    cfg: KeepsakeConfig = ctx.obj["config"]
    try:
        codec = cfg.codec()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    return CheckpointReader(cfg.filesystem(), codec)


@click.group()
@click.version_option(version=__version__)
@click.option("--root", type=click.Path(file_okay=False), help="Resolve relative paths here")
@click.option(
    "--payload-codec",
    type=click.Choice(["pickle", "yaml"]),
    help="Codec the payload was written with",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every candidate attempt")
@click.pass_context
def main(ctx, root, payload_codec, verbose):
    """keepsake: durable checkpoint persistence and recovery."""
    cfg = get_config()
    if root is not None:
        cfg.root = root
    if payload_codec is not None:
        cfg.payload_codec = payload_codec

    configure_logging("INFO" if verbose else cfg.log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@main.command()
@click.argument("path")
@click.pass_context
def inspect(ctx, path):
    """Recover the checkpoint under PATH and show it."""
    reader = _make_reader(ctx)

    try:
        recovery = reader.recover(path)
    except RecoveryExhausted as e:
        console.print(f"[red]{escape(format_error(e.error))}[/red]")
        sys.exit(1)

    cp = recovery.checkpoint
    table = Table(title=f"Checkpoint at {escape(recovery.path)}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("timestamp", _format_millis(cp.timestamp))
    table.add_row("master", escape(str(cp.master)))
    table.add_row("job_name", escape(str(cp.job_name)))
    table.add_row("home", escape(cp.home) if cp.home else "[dim]-[/dim]")
    table.add_row("jars", escape("\n".join(cp.jars)) or "[dim]-[/dim]")
    table.add_row("checkpoint_dir", escape(str(cp.checkpoint_dir)))
    table.add_row("checkpoint_interval", f"{cp.checkpoint_interval} ms")
    table.add_row("payload", type(cp.payload).__name__)
    console.print(table)

    console.print(f"Served by [cyan]{recovery.role}[/cyan] candidate")
    for attempt in recovery.failures:
        console.print(
            f"[yellow]Skipped {escape(attempt.path)}:[/yellow] {escape(attempt.error.message)}"
        )


@main.command()
@click.argument("path")
@click.pass_context
def verify(ctx, path):
    """Report the state of every recovery candidate under PATH.

    Exits 1 if no candidate holds a loadable checkpoint.
    """
    reader = _make_reader(ctx)

    table = Table(title=f"Recovery candidates for {escape(path)}")
    table.add_column("Role")
    table.add_column("Path")
    table.add_column("Status")
    table.add_column("Detail")

    loadable = 0
    for candidate, result in reader.probe(path):
        if result.is_ok():
            loadable += 1
            detail = f"timestamp {_format_millis(result.unwrap().timestamp)}"
            table.add_row(candidate.role, escape(candidate.path), "[green]ok[/green]", detail)
            continue

        error = result.unwrap_err()
        if error.kind == ErrorKind.NOT_FOUND:
            table.add_row(candidate.role, escape(candidate.path), "[dim]absent[/dim]", "")
        else:
            table.add_row(
                candidate.role,
                escape(candidate.path),
                f"[red]{error.kind.value}[/red]",
                escape(error.message),
            )

    console.print(table)

    if loadable == 0:
        console.print(f"[red]No loadable checkpoint under {escape(path)}[/red]")
        sys.exit(1)


@main.group()
def config():
    """Manage configuration (keepsake.yaml)."""
    pass


@config.command("list")
def config_list():
    """Show the effective configuration."""
    effective = get_config()
    defaults = KeepsakeConfig()

    for key, value in effective.to_dict().items():
        marker = "" if getattr(defaults, key) == value else " [cyan](custom)[/cyan]"
        console.print(f"  {key}: {value}{marker}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--project", is_flag=True, help="Set in project-level config")
def config_set(key: str, value: str, project: bool):
    """Set a configuration value.

    Examples:
        keepsake config set payload_codec yaml
        keepsake config set root /data/checkpoints --project
    """
    config_dir = Path.cwd() / ".keepsake" if project else KEEPSAKE_DIR
    cfg = KeepsakeConfig.load(config_dir)

    key = key.replace("-", "_")
    if key == "root":
        cfg.root = value
    elif key == "payload_codec":
        if value not in ("pickle", "yaml"):
            console.print(f"[red]Invalid payload codec: {value}[/red]")
            sys.exit(1)
        cfg.payload_codec = value
    elif key == "file_mode":
        try:
            cfg.file_mode = int(value, 8)
        except ValueError:
            console.print(f"[red]Invalid octal mode: {value}[/red]")
            sys.exit(1)
    elif key == "log_level":
        cfg.log_level = value.upper()
    else:
        console.print(f"[red]Unknown config key: {key}[/red]")
        sys.exit(1)

    path = cfg.save(config_dir)
    console.print(f"[green]✓[/green] Set {key} = {value} in {path}")


if __name__ == "__main__":
    main()
