"""Service level SLO measurement exporter."""

__version__ = "0.1.0"
