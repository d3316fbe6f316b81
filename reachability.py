"""
Camera reachability probe
Sends a single ICMP echo through the system ping binary
"""

import logging
import platform
import subprocess
from typing import List

logger = logging.getLogger("reachability")


def build_ping_command(address: str, timeout: int = 2, system: str = None) -> List[str]:
    """
    Build a one-packet ping command for the current platform

    Args:
        address: Host to probe
        timeout: Per-packet wait in seconds
        system: Platform name override (defaults to platform.system())

    Returns:
        Argument list suitable for subprocess.run
    """
    system = system or platform.system()

    if system == 'Windows':
        return ['ping', '-n', '1', '-w', str(timeout * 1000), address]
    if system == 'Darwin':
        return ['ping', '-c', '1', '-W', str(timeout * 1000), address]
    return ['ping', '-c', '1', '-W', str(timeout), address]


def ping_camera(address: str, timeout: int = 2, overall_timeout: int = 5) -> bool:
    """
    Check whether a camera answers a single ping

    Never raises: any failure is reported as not alive.

    Args:
        address: Camera IP address or hostname
        timeout: Per-packet wait in seconds
        overall_timeout: Ceiling for the whole ping process in seconds

    Returns:
        True if the camera replied
    """
    if not address or address.startswith('-'):
        logger.warning(f"Refusing to ping invalid address: {address!r}")
        return False

    try:
        result = subprocess.run(
            build_ping_command(address, timeout),
            capture_output=True,
            text=True,
            timeout=overall_timeout,
            check=False
        )
    except subprocess.TimeoutExpired:
        logger.debug(f"[PING] {address} -> timed out after {overall_timeout}s")
        return False
    except (FileNotFoundError, OSError) as e:
        logger.error(f"[PING ERROR] {address}: {e}")
        return False

    # Windows exits 0 on "destination unreachable" replies, which carry no TTL
    is_alive = result.returncode == 0 and 'ttl=' in result.stdout.lower()
    logger.debug(f"[PING] {address} -> {'ALIVE' if is_alive else 'DEAD'}")

    return is_alive
