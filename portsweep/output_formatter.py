# portsweep/output_formatter.py
import json
import csv
from typing import List, TextIO

from .exceptions import SinkError
from .models import ScanReport

CSV_HEADERS = ["host", "port", "status"]


def format_report(report: ScanReport, open_only: bool = False) -> List[str]:
    """
    Renders a report as text lines, one `Port <n> is <status>` per port in
    ascending order, followed by notices for partial or incomplete scans.

    Args:
        report: The scan report to render.
        open_only: Only emit lines for open ports.
    """
    lines = [f"Port {port} is {status.value}" for port, status in report.filter(open_only)]
    if report.unknown_count:
        lines.append(f"{report.unknown_count} port(s) could not be probed (socket creation failed)")
    if report.interrupted:
        lines.append(f"Scan interrupted: results are partial ({report.probed_count}/{report.total_ports} ports probed)")
    return lines


def write_report(report: ScanReport, sink: TextIO, open_only: bool = False):
    """Writes the rendered report to any text stream (console or open file)."""
    try:
        for line in format_report(report, open_only):
            sink.write(line + "\n")
        sink.flush()
    except (OSError, ValueError) as e:
        # ValueError covers writes to an already closed stream
        raise SinkError(f"Could not write report: {e}") from e


def save_report(report: ScanReport, filename: str, open_only: bool = False):
    """Saves the text report to a file."""
    try:
        with open(filename, 'w', encoding='utf-8') as f:
            write_report(report, f, open_only)
    except SinkError:
        raise
    except OSError as e:
        raise SinkError(f"Error saving report to {filename}: {e}") from e


def save_json(report: ScanReport, filename: str, open_only: bool = False):
    """
    Saves scan results to a JSON file.

    Args:
        report: The scan report to save.
        filename: The name of the JSON file to save to.
        open_only: Only include open ports in the results list.
    """
    try:
        with open(filename, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(open_only), f, indent=4)
    except OSError as e:
        raise SinkError(f"Error saving JSON to {filename}: {e}") from e


def save_csv(report: ScanReport, filename: str, open_only: bool = False):
    """Saves scan results to a CSV file with one row per port."""
    try:
        with open(filename, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=CSV_HEADERS)
            writer.writeheader()
            for port, status in report.filter(open_only):
                writer.writerow({"host": report.host, "port": port, "status": status.value})
    except OSError as e:
        raise SinkError(f"Error saving CSV to {filename}: {e}") from e
