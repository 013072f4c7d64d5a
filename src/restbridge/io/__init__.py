"""I/O layer: transports for underlying calls."""
