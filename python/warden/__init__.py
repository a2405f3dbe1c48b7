"""Warden - authorization-filtered search over sensitive clinical records."""

__version__ = "0.1.0"
