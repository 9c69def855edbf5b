"""Manage reverse SSH tunnels from the command line or a small web API."""

__version__ = "0.1.0"