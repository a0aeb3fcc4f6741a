"""regkit — build, verify, and install component registry bundles."""

__version__ = "0.1.0"
