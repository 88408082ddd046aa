"""
Service Discovery Package

Provides subnet scanning and local network inspection for finding echo servers.
"""

from .local_network import get_local_ipv4_addresses, guess_subnet_prefix
from .subnet_scanner import ScannerConfig, SubnetScanner, scan

__all__ = [
    "ScannerConfig",
    "SubnetScanner",
    "scan",
    "get_local_ipv4_addresses",
    "guess_subnet_prefix",
]
