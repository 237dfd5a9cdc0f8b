"""``loadpulse run``: execute a load test and report the results."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from loadpulse._internal.config import load_config
from loadpulse._internal.errors import LoadPulseError
from loadpulse._internal.logging import setup_logging
from loadpulse.engine.dispatcher import DispatchMode
from loadpulse.engine.runner import LoadTestRunner
from loadpulse.reporting.results_file import save_results
from loadpulse.reporting.summary import render_summary

console = Console(stderr=True)


def _describe_mode(mode: DispatchMode, requests: int, workers: int, duration: float) -> str:
    if mode is DispatchMode.INTERVAL:
        return f"interval ({duration:g}s)"
    return f"quota ({requests} requests, {workers} workers)"


def run_cmd(
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a JSON configuration file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    mode: DispatchMode = typer.Option(
        DispatchMode.QUOTA,
        "--mode",
        "-m",
        help="Dispatch mode: quota (fixed request count) or interval (fixed duration).",
        case_sensitive=False,
    ),
    requests: int | None = typer.Option(
        None,
        "--requests",
        "-n",
        help="Total requests (quota mode).",
    ),
    post_ratio: float | None = typer.Option(
        None,
        "--post-ratio",
        "-r",
        help="Fraction of requests that are POSTs (0 to 1).",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        help="Concurrent workers (quota mode).",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        "-u",
        help="Initial target endpoint (host:port).",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Per-request timeout in seconds.",
    ),
    duration: float | None = typer.Option(
        None,
        "--duration",
        "-d",
        help="Run length in seconds (interval mode).",
    ),
    interval: float | None = typer.Option(
        None,
        "--interval",
        help="Seconds between requests: per tick (interval) or per worker (quota).",
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        help="Seed for the workload random source.",
    ),
    output: Path = typer.Option(
        Path("."),
        "--output",
        "-o",
        help="Directory for the JSON results file.",
    ),
    no_save: bool = typer.Option(
        False,
        "--no-save",
        help="Skip writing the results file.",
    ),
    no_verify: bool = typer.Option(
        False,
        "--no-verify",
        help="Skip the post-run server verification request.",
    ),
    interactive: bool = typer.Option(
        False,
        "--interactive",
        "-i",
        help="Stop the run early by typing 'q' or 'stop' and pressing Enter.",
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if the failed fraction exceeds this threshold (e.g., 0.05).",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit logs as one JSON object per line.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """Run a load test against the message API."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO, json_format=json_logs)

    try:
        config = load_config(config_file).with_overrides(
            total_requests=requests,
            post_ratio=post_ratio,
            worker_number=workers,
            base_url=base_url,
            timeout=timeout,
            duration=duration,
            request_interval=interval,
        )
    except LoadPulseError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    mode_text = _describe_mode(mode, config.total_requests, config.worker_number, config.duration)
    console.print(
        Panel(
            f"[bold]Mode:[/bold]       {mode_text}\n"
            f"[bold]Endpoint:[/bold]   {config.base_url}\n"
            f"[bold]POST ratio:[/bold] {config.post_ratio:.2f}\n"
            f"[bold]Interval:[/bold]   {config.request_interval:g}s\n"
            f"[bold]Timeout:[/bold]    {config.timeout:g}s",
            title="loadpulse",
            border_style="cyan",
        )
    )

    runner = LoadTestRunner(
        config,
        mode,
        seed=seed,
        verify=not no_verify,
        console_commands=interactive,
    )
    try:
        report = runner.run()
    except LoadPulseError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"\nTest completed after {report.duration_seconds:.1f}s")
    if report.shutdown_reason is not None:
        console.print(f"Stopped by: {report.shutdown_reason.value}")
    if report.final_endpoint != config.base_url:
        console.print(f"Final endpoint: {report.final_endpoint}")

    render_summary(report.stats, console, report.verification)

    if not no_save:
        try:
            path = save_results(report.stats, output, now=report.started_at)
        except OSError as exc:
            console.print(f"[red]Error saving results:[/red] {exc}")
            raise typer.Exit(code=1) from exc
        console.print(f"\nResults saved to: {path}")

    if fail_on_error_rate is not None and report.stats.error_rate > fail_on_error_rate:
        console.print(
            f"[red]FAIL:[/red] Error rate {report.stats.error_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_error_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)

    console.print("[green]Load test completed successfully.[/green]")
