"""blockanchor — periodic block anchoring client for blockchain nodes."""

__version__ = "0.1.0"
