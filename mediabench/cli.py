#!/usr/bin/env python3
"""
mediabench CLI

Command-line interface for the media data-path benchmark.

Usage:
    mediabench benchmark FILE...        # Time read, transcode, and transfer
    mediabench server                   # Run the transfer server
    mediabench config                   # Show the effective configuration
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.logging import RichHandler
from rich.markup import escape

from mediabench.config import Config, EXAMPLE_CONFIG, load_config
from mediabench.bench import BenchmarkResult
from mediabench.runner import BenchmarkRunner, BenchmarkSettings, FileReport
from mediabench.transfer import TransferProtocol, TransferServer

console = Console()

PROTOCOL_CHOICES = [p.value for p in TransferProtocol]


def setup_logging(verbose: bool = False, level_name: str = 'INFO'):
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='JSON config file')
@click.pass_context
def cli(ctx, verbose, config_path):
    """mediabench - time and verify disk, transcode, and network data paths."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except (ValueError, json.JSONDecodeError) as e:
        raise click.UsageError(f"Invalid configuration: {e}")

    setup_logging(verbose, config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.argument('files', nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--transcode-seconds', type=float, help='Transcode at most this much media')
@click.option('--port', type=click.IntRange(0, 65535), help='Transfer server port')
@click.option('--remote-ip', help='LAN transfer server address')
@click.option('--iterations', '-n', type=click.IntRange(min=1), help='Runs per operation')
@click.option('--protocol', type=click.Choice(PROTOCOL_CHOICES), help='Transfer wire protocol')
@click.option('--skip-transcode', is_flag=True, help='Do not run the transcode path')
@click.option('--skip-transfer', is_flag=True, help='Do not run the transfer paths')
@click.pass_context
def benchmark(ctx, files, transcode_seconds, port, remote_ip, iterations,
              protocol, skip_transcode, skip_transfer):
    """Benchmark reading, transcoding, and transferring FILES."""
    config: Config = ctx.obj['config']

    if transcode_seconds is not None:
        config.transcode_seconds = transcode_seconds
    if port is not None:
        config.port = port
    if remote_ip is not None:
        config.remote_ip = remote_ip
    if iterations is not None:
        config.iterations = iterations
    if protocol is not None:
        config.protocol = TransferProtocol.parse(protocol)

    try:
        config.validate()
    except ValueError as e:
        raise click.UsageError(str(e))

    settings = BenchmarkSettings(
        iterations=config.iterations,
        transcode_seconds=config.transcode_seconds,
        port=config.port,
        remote_ip=config.remote_ip,
        protocol=config.protocol,
        chunk_size=config.chunk_size,
        connect_timeout=config.connect_timeout,
        ffmpeg=config.ffmpeg,
        ffmpeg_args=config.ffmpeg_args,
        run_transcode=not skip_transcode,
        run_transfer=not skip_transfer,
    )

    def show_progress(path: Path, result: BenchmarkResult):
        console.print(format_result(result))
        for failure in result.failures:
            console.print(f"  [red]✗ iteration {failure.index + 1}: {escape(failure.detail)}[/red]")

    async def run() -> List[FileReport]:
        runner = BenchmarkRunner(settings)
        return await runner.run(list(files), on_result=show_progress)

    reports = asyncio.run(run())

    for report in reports:
        console.print(results_table(report))

    if not all(report.ok for report in reports):
        ctx.exit(1)


@cli.command()
@click.option('--host', help='Listen address')
@click.option('--port', type=click.IntRange(0, 65535), help='Listen port')
@click.option('--protocol', type=click.Choice(PROTOCOL_CHOICES), help='Transfer wire protocol')
@click.option('--max-connections', type=click.IntRange(min=1),
              help='Serve at most this many connections at once (default: unbounded)')
@click.pass_context
def server(ctx, host, port, protocol, max_connections):
    """Run the transfer server."""
    config: Config = ctx.obj['config']

    if host is not None:
        config.host = host
    if port is not None:
        config.port = port
    if protocol is not None:
        config.protocol = TransferProtocol.parse(protocol)
    if max_connections is not None:
        config.max_connections = max_connections

    try:
        config.validate()
    except ValueError as e:
        raise click.UsageError(str(e))

    async def run():
        transfer_server = TransferServer(
            host=config.host,
            port=config.port,
            protocol=config.protocol,
            max_connections=config.max_connections,
            chunk_size=config.chunk_size,
            idle_timeout=config.idle_timeout,
        )
        await transfer_server.start()

        console.print(Panel.fit(
            f"[bold green]Transfer Server Started[/bold green]\n\n"
            f"Address: [cyan]{config.host}:{transfer_server.bound_port}[/cyan]\n"
            f"Protocol: [yellow]{config.protocol.value}[/yellow]\n"
            f"Max connections: [yellow]{config.max_connections or 'unbounded'}[/yellow]",
            title="Server Info"
        ))
        console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

        try:
            await transfer_server.serve_forever()
        finally:
            await transfer_server.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")
    except OSError as e:
        raise click.ClickException(f"Failed to start server: {e}")


@cli.command('config')
@click.option('--example', is_flag=True, help='Print an example config file instead')
@click.pass_context
def show_config(ctx, example):
    """Show the effective configuration."""
    if example:
        console.print_json(EXAMPLE_CONFIG)
        return

    config: Config = ctx.obj['config']
    console.print_json(json.dumps(config.to_dict()))


def format_seconds(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f} s"


def format_result(result: BenchmarkResult) -> str:
    """One-line summary, e.g. 'Read file in 1.2 ± 0.1 s (got 0x3f)'."""
    if result.mean is None:
        return f"[red]{escape(result.label)} failed ({len(result.failures)}/{result.iterations} iterations)[/red]"

    if result.stdev is None:
        spread = "± undefined"
    else:
        spread = f"± {result.stdev:.1f}"

    if result.last_failed:
        got = "last run failed"
    else:
        got = f"got {format_output(result.last_output)}"

    return f"{escape(result.label)} in {result.mean:.1f} {spread} s ({got})"


def format_output(value) -> str:
    if isinstance(value, int):
        return f"0x{value:02x}"
    return repr(value)


def results_table(report: FileReport) -> Table:
    """Render a file's results."""
    size = "size unknown" if report.size is None else format_size(report.size)
    table = Table(title=f"{escape(report.path.name)} ({size})")
    table.add_column("Operation", style="cyan")
    table.add_column("Mean", justify="right", style="yellow")
    table.add_column("Std dev", justify="right")
    table.add_column("Throughput", justify="right", style="green")
    table.add_column("Checksum")
    table.add_column("Failures", justify="right")

    for r in report.results:
        throughput = r.throughput
        table.add_row(
            escape(r.label),
            format_seconds(r.mean),
            "undefined" if r.stdev is None else f"{r.stdev:.3f} s",
            "-" if throughput is None else f"{format_size(throughput)}/s",
            "-" if r.mean is None or r.last_failed else format_output(r.last_output),
            f"[red]{len(r.failures)}[/red]" if r.failures else "0",
        )

    return table


def format_size(bytes_count: float) -> str:
    """Format bytes as human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024
    return f"{bytes_count:.1f} PB"


if __name__ == '__main__':
    cli()
