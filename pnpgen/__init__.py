"""pnpgen - Plug'n'Play map generator."""

__version__ = "1.0.0"
