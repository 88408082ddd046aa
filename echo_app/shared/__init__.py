"""
Shared Components

Configuration, constants, exceptions, logging, models and utilities used by
both the client and the server.
"""
