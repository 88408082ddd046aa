"""
Application Constants

Defines constants used throughout the echo application.
"""

# Protocol constants
DEFAULT_GREETING = "Hello from Python client!"
ECHO_PREFIX = "ECHO: "
TEXT_ENCODING = "utf-8"

# Default network settings
DEFAULT_SERVER_HOST = "0.0.0.0"
DEFAULT_SERVER_PORT = 8080
DEFAULT_SUBNET_HINT = "192.168.1"
PREFERRED_SUBNET_PREFIX = "192.168."

# Buffer and limit constants
CLIENT_BUFFER_SIZE = 1024
SERVER_BUFFER_SIZE = 4096
MAX_LOG_ENTRIES = 100
DEFAULT_LISTEN_BACKLOG = 16

# Scanner constants
FIRST_HOST_OCTET = 1
LAST_HOST_OCTET = 254
DEFAULT_SCAN_CONCURRENCY = 32
DEFAULT_PROBE_TIMEOUT = 0.3
DEFAULT_SCAN_TIMEOUT = 8.0

# Timing constants
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_RECEIVE_POLL_INTERVAL = 0.25
DEFAULT_SOCKET_TIMEOUT = 1.0
THREAD_JOIN_TIMEOUT = 2.0

# Port range
MIN_PORT = 1
MAX_PORT = 65535

# Command constants
QUIT_COMMAND = "/quit"
SCAN_COMMAND = "/scan"
LOG_COMMAND = "/log"
HELP_COMMAND = "/help"

# Log format constants
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_ENTRY_TIME_FORMAT = "%H:%M:%S"
