from pydantic import BaseModel


class DescriptiveStats(BaseModel):
    n: int
    mean: float | None = None
    sd: float | None = None
    min: float | None = None
    q1: float | None = None
    median: float | None = None
    q3: float | None = None
    max: float | None = None
    ci_lower: float | None = None
    ci_upper: float | None = None
    alpha: float = 0.05

    @property
    def ci_half_width(self) -> float | None:
        if self.ci_lower is None or self.ci_upper is None:
            return None
        return (self.ci_upper - self.ci_lower) / 2


class GroupStats(BaseModel):
    group_by: str
    group: str
    stats: DescriptiveStats


class GroupComparison(BaseModel):
    variable: str
    group_by: str
    groups: list[str]
    welch_statistic: float | None = None
    welch_p_value: float | None = None
    mwu_statistic: float | None = None
    mwu_p_value: float | None = None
