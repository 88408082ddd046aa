"""
Local Network Inspection

Finds the IPv4 addresses of this host and guesses the /24 subnet to scan.
"""

import ipaddress
import socket
from typing import List, Optional

import psutil

from echo_app.shared.constants import PREFERRED_SUBNET_PREFIX
from echo_app.shared.logging_config import get_logger
from echo_app.shared.models import LocalInterface
from echo_app.shared.utils import subnet_prefix_of


logger = get_logger(__name__)


def get_local_interfaces() -> List[LocalInterface]:
    """
    Get the IPv4 addresses bound to up, non-loopback interfaces.

    Returns:
        Interfaces in the order psutil reports them.
    """
    interfaces: List[LocalInterface] = []

    try:
        addresses = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, RuntimeError) as e:
        logger.warning(f"Could not enumerate network interfaces: {e}")
        return interfaces

    for name, entries in addresses.items():
        stat = stats.get(name)
        if stat is None or not stat.isup:
            continue

        for entry in entries:
            if entry.family != socket.AF_INET or not entry.address:
                continue
            try:
                if ipaddress.IPv4Address(entry.address).is_loopback:
                    continue
            except ValueError:
                continue
            interfaces.append(LocalInterface(name=name, address=entry.address, netmask=entry.netmask))

    return interfaces


def get_local_ipv4_addresses() -> List[str]:
    """Get the non-loopback IPv4 addresses of this host."""
    return [interface.address for interface in get_local_interfaces()]


def get_preferred_local_address() -> Optional[str]:
    """
    Pick the address most likely to be on the home WiFi.

    Addresses in 192.168.* win; otherwise the first address found.
    """
    addresses = get_local_ipv4_addresses()
    if not addresses:
        return None

    logger.debug(f"Found IP addresses: {', '.join(addresses)}")
    preferred = next((a for a in addresses if a.startswith(PREFERRED_SUBNET_PREFIX)), addresses[0])
    logger.debug(f"Using: {preferred}")
    return preferred


def guess_subnet_prefix() -> Optional[str]:
    """
    Guess the /24 prefix of the local network, e.g. ``"192.168.1"``.

    Returns:
        The first three octets of the preferred local address, or None.
    """
    address = get_preferred_local_address()
    if address is None:
        return None
    return subnet_prefix_of(address)
