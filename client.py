#!/usr/bin/env python3
"""Run the echo client from a source checkout."""

import sys

from echo_app.client.main import main


if __name__ == "__main__":
    sys.exit(main())
