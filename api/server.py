# api/server.py
from flask import Flask, request, jsonify
import asyncio # Required to run the asynchronous scanner
import logging
from typing import Dict, Any

from portsweep.exceptions import UsageError
from portsweep.scanner import Scanner
from portsweep.utils import parse_port_range, resolve_host

app = Flask(__name__)
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 10


# Runs the async scanner inside a synchronous Flask route. Each request gets
# its own event loop; long scans block the serving thread for their duration.
def run_async_in_sync(coro):
    """Runs an asynchronous coroutine in a synchronous context."""
    return asyncio.run(coro)


def _int_param(data: Dict[str, Any], name: str, default=None) -> int:
    value = data.get(name, default)
    if value is None:
        raise UsageError(f"The '{name}' parameter is required in the request body.")
    if isinstance(value, bool):
        raise UsageError(f"The '{name}' parameter must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise UsageError(f"The '{name}' parameter must be an integer.") from e


def _bool_param(data: Dict[str, Any], name: str, default: bool = False) -> bool:
    value = data.get(name, default)
    if not isinstance(value, bool):
        raise UsageError(f"The '{name}' parameter must be true or false.")
    return value


@app.route("/api/scan", methods=["POST"])
def scan():
    """
    Handles POST requests to /api/scan.
    Expects a JSON body with 'host' and either 'ports' ("1-1024") or
    'start_port' and 'end_port', plus optional 'workers', 'timeout' and
    'open_only'.
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({"error": "Request must be a non-empty JSON object."}), 400

    try:
        target_ip = resolve_host(str(data.get("host") or ""))
        if data.get("ports") is not None:
            start_port, end_port = parse_port_range(str(data["ports"]))
        else:
            start_port = _int_param(data, "start_port")
            end_port = _int_param(data, "end_port")
        workers = _int_param(data, "workers", DEFAULT_WORKERS)
        try:
            timeout = float(data.get("timeout", 1.0))
        except (TypeError, ValueError) as e:
            raise UsageError("The 'timeout' parameter must be a number.") from e
        open_only = _bool_param(data, "open_only")

        scanner = Scanner(
            target=target_ip,
            start_port=start_port,
            end_port=end_port,
            workers=workers,
            timeout=timeout
        )
    except UsageError as e:
        logger.warning(f"Rejected scan request: {e}")
        return jsonify({"error": str(e)}), 400

    logger.info(f"API Scan Request: {target_ip} ports {start_port}-{end_port} with {len(scanner.jobs)} workers.")
    try:
        report = run_async_in_sync(scanner.run())
    except Exception as e:
        logger.critical(f"Unhandled API Scan endpoint error: {e}", exc_info=True)
        return jsonify({"error": f"An unhandled internal server error occurred: {str(e)}"}), 500

    body = report.to_dict(open_only)
    body["status"] = "success"
    logger.info(f"Completed scan for {target_ip}. Found {len(report.open_ports())} open ports.")
    return jsonify(body), 200


def start_api_server(host: str = "127.0.0.1", port: int = 8000, debug: bool = False):
    """Starts the Flask API server."""
    logger.info(f"Starting Flask API server on http://{host}:{port} (Debug mode: {debug})...")
    # In a production deployment, use a production-ready WSGI server like Gunicorn or uWSGI.
    app.run(host=host, port=port, debug=debug)
