"""Helm Watchdog - track chart releases and their mirrored container images."""

__version__ = "0.1.0"
