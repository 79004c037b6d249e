"""SLI measurement types."""

from service_level.sli.result import Result

__all__ = ["Result"]
