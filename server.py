#!/usr/bin/env python3
"""Run the echo server from a source checkout."""

import sys

from echo_app.server.main import main


if __name__ == "__main__":
    sys.exit(main())
