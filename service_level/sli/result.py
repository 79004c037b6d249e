"""SLI measurement result."""

import math

from pydantic import BaseModel, ConfigDict, Field


class Result(BaseModel):
    """Total and erroneous query counts of one evaluation window.

    Counts are floats because SLI backends usually derive them from rates.
    ``error_q`` higher than ``total_q`` is not rejected; such a result simply
    yields an error ratio above one.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    total_q: float = Field(ge=0, description="Total queries in the window")
    error_q: float = Field(ge=0, description="Erroneous queries in the window")

    def error_ratio(self) -> float:
        """Error ratio of this window, 0 when there was no traffic.

        A ratio that overflows (tiny totals with huge error counts) is also
        reported as 0 so exported counters stay finite.
        """
        if self.total_q == 0:
            return 0.0
        ratio = float(self.error_q) / float(self.total_q)
        if not math.isfinite(ratio):
            return 0.0
        return ratio

    def availability_ratio(self) -> float:
        return 1.0 - self.error_ratio()
