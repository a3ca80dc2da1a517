"""Site tracker core: session resolution and tracked-site registration."""

__version__ = "1.0.0"
