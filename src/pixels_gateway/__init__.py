"""pixels-gateway: on-demand image transformation gateway."""

__version__ = "0.1.0"
