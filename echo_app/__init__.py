"""
LAN Echo

A TCP echo server and a client that finds it by scanning the local subnet.
"""

__version__ = "1.0.0"
