"""Courier Watch: courier tracking, routing and ETA estimation for the operator console."""

__version__ = "0.1.0"
