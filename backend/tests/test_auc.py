"""Tests for trapezoidal AUC and the per-subject collapse."""

import numpy as np
import pandas as pd
import pytest

from services.analysis.auc import build_subject_summary, find_inconsistent_fields, trapezoid_auc


class TestTrapezoidAUC:
    def test_triangle(self):
        assert trapezoid_auc([0, 1, 2], [0, 2, 0]) == pytest.approx(2.0)

    def test_unequal_spacing(self):
        # (0.5)(0+4)/2 + (1.5)(4+2)/2 = 1 + 4.5
        assert trapezoid_auc([0, 0.5, 2.0], [0, 4, 2]) == pytest.approx(5.5)

    def test_unsorted_input_is_sorted(self):
        assert trapezoid_auc([2, 0, 1], [0, 0, 2]) == pytest.approx(2.0)

    def test_single_point_is_zero(self):
        assert trapezoid_auc([1.0], [5.0]) == 0.0

    def test_empty_is_zero(self):
        assert trapezoid_auc([], []) == 0.0

    def test_missing_pairs_dropped(self):
        assert trapezoid_auc([0, 1, np.nan, 2], [0, 2, 7, 0]) == pytest.approx(2.0)
        assert trapezoid_auc([0, 1], [0, np.nan]) == 0.0


def _enriched():
    return pd.DataFrame({
        "subject": ["1", "1", "1", "2", "2", "2", "3"],
        "weight": [79.6, 79.6, 79.6, 72.4, 72.4, 72.4, 70.5],
        "dose": [4.02, 4.02, 4.02, 4.40, 4.40, 4.40, 4.53],
        "age": [35.0, 35.0, 35.0, 27.0, 27.0, 27.0, 41.0],
        "sex": ["M", "M", "M", "F", "F", "F", "F"],
        "time": [0.0, 1.0, 2.0, 2.0, 0.0, 1.0, 0.0],
        "conc": [0.0, 2.0, 0.0, 1.0, 0.0, 3.0, 0.0],
    })


class TestBuildSubjectSummary:
    def test_one_row_per_subject(self):
        enriched = _enriched()
        summary = build_subject_summary(enriched)
        assert len(summary) == enriched["subject"].nunique()
        assert list(summary["subject"]) == ["1", "2", "3"]
        assert list(summary.columns) == [
            "subject", "weight", "dose", "age", "sex", "auc", "cmax", "tmax", "n_points",
        ]

    def test_auc_values(self):
        summary = build_subject_summary(_enriched()).set_index("subject")
        assert summary.loc["1", "auc"] == pytest.approx(2.0)
        # subject 2 sorted: (0,0),(1,3),(2,1) -> 1.5 + 2.0
        assert summary.loc["2", "auc"] == pytest.approx(3.5)
        assert summary.loc["3", "auc"] == 0.0
        assert summary.loc["3", "n_points"] == 1

    def test_peak(self):
        summary = build_subject_summary(_enriched()).set_index("subject")
        assert summary.loc["2", "cmax"] == pytest.approx(3.0)
        assert summary.loc["2", "tmax"] == pytest.approx(1.0)

    def test_constant_fields_carried(self):
        summary = build_subject_summary(_enriched()).set_index("subject")
        assert summary.loc["1", "weight"] == 79.6
        assert summary.loc["2", "sex"] == "F"
        assert summary.loc["3", "age"] == 41.0

    def test_first_value_kept_when_not_constant(self):
        enriched = _enriched()
        enriched.loc[1, "weight"] = 80.0
        summary = build_subject_summary(enriched).set_index("subject")
        assert summary.loc["1", "weight"] == 79.6
        assert find_inconsistent_fields(enriched) == {"weight": ["1"]}

    def test_no_inconsistencies(self):
        assert find_inconsistent_fields(_enriched()) == {}
