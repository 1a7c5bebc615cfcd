#!/usr/bin/env python3
import typer
import sys
import signal
import logging
import asyncio
from typing import Optional

# Configure basic logging for the main script
logging.basicConfig(level=logging.WARNING, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

# Initialize the Typer application
app = typer.Typer()

EXIT_INTERRUPTED = 130


def _install_interrupt_handler(scanner):
    """Routes the first Ctrl-C to a cooperative stop; a second one aborts."""
    def handler(signum, frame):
        logger.warning("Interrupt received, finishing in-flight probes. Press Ctrl-C again to abort.")
        scanner.request_stop()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    return signal.signal(signal.SIGINT, handler)


@app.command()
def scan(
    host: str = typer.Argument(..., help="Target IPv4 address or hostname"),
    start_port: int = typer.Argument(..., help="First port of the range"),
    end_port: int = typer.Argument(..., help="Last port of the range"),
    workers: Optional[int] = typer.Argument(None, help="Number of concurrent workers"),
    open_only: bool = typer.Option(False, "--open-only", help="Only report open ports"),
    output: Optional[str] = typer.Option(None, "-o", "--output", help="Write the text report to a file"),
    output_json: Optional[str] = typer.Option(None, "-oJ", "--output-json", help="Output results to JSON file"),
    output_csv: Optional[str] = typer.Option(None, "-oC", "--output-csv", help="Output results to CSV file"),
    timeout: Optional[float] = typer.Option(None, "-t", "--timeout", help="Connect timeout per port in seconds"),
    config_file: Optional[str] = typer.Option(None, "--config", help="YAML configuration file"),
    no_progress: bool = typer.Option(False, "--no-progress", help="Do not print progress lines"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging")
):
    """Scan a range of TCP ports on a single host"""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose:
        logging.getLogger().setLevel(logging.INFO)

    from portsweep.config import load_config
    from portsweep.exceptions import ConfigError, SinkError, UsageError
    from portsweep.output_formatter import write_report, save_report, save_json, save_csv
    from portsweep.scanner import Scanner
    from portsweep.utils import resolve_host

    try:
        config = load_config(config_file)
    except ConfigError as e:
        logger.error(str(e))
        raise typer.Exit(code=1)

    show_progress = config['show_progress'] and not no_progress
    try:
        target_ip = resolve_host(host)
        scanner = Scanner(
            target=target_ip,
            start_port=start_port,
            end_port=end_port,
            workers=workers if workers is not None else config['workers'],
            timeout=timeout if timeout is not None else config['timeout_seconds'],
            progress_sink=sys.stderr if show_progress else None,
            progress_interval=config['progress_interval_seconds'],
            verbose=verbose
        )
    except UsageError as e:
        logger.error(f"Usage error: {e}")
        raise typer.Exit(code=2)

    previous_handler = _install_interrupt_handler(scanner)
    try:
        report = asyncio.run(scanner.run())
    except KeyboardInterrupt:
        logger.warning("Scan aborted by user.")
        raise typer.Exit(code=EXIT_INTERRUPTED)
    except Exception as e:
        logger.critical(f"An unexpected error occurred: {e}")
        raise typer.Exit(code=1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    exit_code = EXIT_INTERRUPTED if report.interrupted else 0
    try:
        if output:
            save_report(report, output, open_only)
            logger.info(f"Report saved to {output}")
        else:
            write_report(report, sys.stdout, open_only)

        if output_json:
            save_json(report, output_json, open_only)
            logger.info(f"Results saved to {output_json}")

        if output_csv:
            save_csv(report, output_csv, open_only)
            logger.info(f"Results saved to {output_csv}")
    except SinkError as e:
        logger.error(str(e))
        if output:
            # Keep the results visible even though the file could not be written
            write_report(report, sys.stdout, open_only)
        exit_code = 1

    raise typer.Exit(code=exit_code)


@app.command("init-config")
def init_config(
    path: str = typer.Argument("portsweep.yaml", help="Where to write the configuration file")
):
    """Write a configuration file with the default settings"""
    from portsweep.config import DEFAULT_CONFIG, save_config
    from portsweep.exceptions import ConfigError

    try:
        save_config(DEFAULT_CONFIG, path)
    except ConfigError as e:
        logger.error(str(e))
        raise typer.Exit(code=1)
    print(f"Default configuration written to {path}")


@app.command()
def api(
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False
):
    """Run the port scanner in API mode"""
    logger.info(f"Starting API server on {host}:{port} (Debug: {debug})...")
    try:
        from api.server import start_api_server
        start_api_server(host, port, debug)
    except ImportError as e:
        logger.error(f"Failed to load API server module: {e}")
        sys.exit(1)


if __name__ == "__main__":
    app()
