"""Multi-species Physarum transport network simulation."""

__version__ = "0.1.0"
