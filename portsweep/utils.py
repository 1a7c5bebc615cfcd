# portsweep/utils.py
import ipaddress
import math
import socket
import logging
from typing import Tuple, Union

from .exceptions import UsageError
from .models import MIN_PORT, MAX_PORT

logger = logging.getLogger(__name__)

# Upper bound for timeouts and sampling intervals, in seconds
MAX_DURATION = 3600.0


def validate_ip(ip: str) -> bool:
    """Validates if a string is a valid IPv4 address."""
    try:
        return ipaddress.ip_address(ip).version == 4
    except ValueError:
        return False


def validate_port(port: Union[int, str]) -> bool:
    """Validates if an integer is a valid port number (1-65535)."""
    try:
        port_num = int(port)
        return MIN_PORT <= port_num <= MAX_PORT
    except (ValueError, TypeError):
        return False


def validate_duration(value, maximum: float = MAX_DURATION) -> bool:
    """Validates a timeout or interval: a finite number of seconds in (0, maximum]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and 0 < value <= maximum


def resolve_host(target: str) -> str:
    """
    Resolves a target (IPv4 literal or hostname) to a single IPv4 address.

    Args:
        target: IPv4 address or hostname.

    Returns:
        str: The IPv4 address to scan.

    Raises:
        UsageError: If the target is empty, an IPv6 literal, or cannot be resolved.
    """
    target = (target or "").strip()
    if not target:
        raise UsageError("A target host is required.")

    try:
        ip_obj = ipaddress.ip_address(target)
    except ValueError:
        pass  # Not an IP literal, try as hostname
    else:
        if ip_obj.version != 4:
            raise UsageError(f"Only IPv4 targets are supported (got '{target}').")
        return str(ip_obj)

    try:
        addr_info = socket.getaddrinfo(target, None, socket.AF_INET, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise UsageError(f"Could not resolve host '{target}': {e}") from e

    for info in addr_info:
        ip = info[4][0]
        if validate_ip(ip):
            logger.debug(f"Resolved '{target}' to {ip}.")
            return ip
    raise UsageError(f"Host '{target}' resolved but no IPv4 address was found.")


def parse_port_range(port_str: str) -> Tuple[int, int]:
    """
    Parses a port range string such as '1-1024' or a single port '80'.
    Raises UsageError for invalid ranges.
    """
    port_str = (port_str or "").strip()
    if not port_str:
        raise UsageError("No port range specified.")

    start_str, sep, end_str = port_str.partition('-')
    if not sep:
        end_str = start_str
    try:
        start, end = int(start_str), int(end_str)
    except ValueError as e:
        raise UsageError(f"Invalid port range '{port_str}'. Expected START-END, e.g. 1-1024.") from e

    if not (validate_port(start) and validate_port(end)):
        raise UsageError(f"Invalid port range: {port_str}. Ports must be between {MIN_PORT} and {MAX_PORT}.")
    if start > end:
        raise UsageError(f"Invalid port range: {port_str}. Start port must be less than or equal to end port.")
    return start, end
