"""End-to-end pipeline tests on the bundled Theophylline data and dm.csv.

Bundled ground truth:
  theoph.csv: 132 rows, 12 subjects, 11 samples each (pre-dose sample at t=0)
  dm.csv: 12 subjects, 6 M / 6 F, ages in years, months, weeks and bare numbers
    subject 6 age "636" -> override (months) -> 53.0
    subject 8 "384 months" -> 32.0, subject 10 "1612 weeks" -> 31.0
"""

import matplotlib.pyplot as plt
import pytest

from config import BUNDLED_DM_CSV
from generator.generate import generate
from generator.plots import (
    interactive_auc_by_group,
    interactive_concentration_time,
    plot_auc_by_group,
    plot_concentration_time,
    plot_covariate_boxplots,
)
from services.analysis.auc import trapezoid_auc


@pytest.fixture(scope="module")
def result(tmp_path_factory):
    out_dir = tmp_path_factory.mktemp("report")
    return generate(dm_path=BUNDLED_DM_CSV, output_dir=out_dir)


class TestPipeline:
    def test_join_preserves_rows(self, result):
        assert len(result["enriched"]) == len(result["observations"]) == 132
        assert result["enriched"][["sex", "age"]].notna().all().all()

    def test_one_row_per_subject(self, result):
        summary = result["summary"]
        assert len(summary) == result["observations"]["subject"].nunique() == 12
        assert summary["subject"].is_unique

    def test_ages(self, result):
        ages = result["summary"].set_index("subject")["age"]
        assert ages["6"] == pytest.approx(53.0)
        assert ages["8"] == pytest.approx(32.0)
        assert ages["10"] == pytest.approx(31.0)
        assert ages["11"] == pytest.approx(31.5)

    def test_sex_codes(self, result):
        assert set(result["summary"]["sex"]) == {"M", "F"}
        assert (result["summary"]["sex"] == "M").sum() == 6

    def test_auc_matches_direct_integration(self, result):
        enriched = result["enriched"]
        summary = result["summary"].set_index("subject")
        for subject, sub in enriched.groupby("subject"):
            assert summary.loc[subject, "auc"] == pytest.approx(trapezoid_auc(sub["time"], sub["conc"]))
        assert (summary["auc"] > 0).all()

    def test_known_subject_auc(self, result):
        auc = result["summary"].set_index("subject")["auc"]
        assert auc["1"] == pytest.approx(148.92305)

    def test_statistics(self, result):
        overall = result["overall"]
        assert overall.n == 12
        assert overall.ci_lower < overall.mean < overall.ci_upper
        assert [g.group for g in result["by_sex"]] == ["F", "M"]
        assert sum(g.stats.n for g in result["by_sex"]) == 12
        assert result["comparison"].groups == ["F", "M"]

    def test_provenance_reports_override(self, result):
        rules = [m["rule_id"] for m in result["provenance"]]
        assert "Prov-001" in rules
        assert "Prov-002" in rules

    def test_report_written(self, result):
        report = result["report_path"]
        assert report.is_file()
        text = report.read_text(encoding="utf-8")
        assert "95% CI" in text
        assert "static/concentration_time.png" in text
        assert "Prov-001" in text
        for name in ["covariates_by_sex.png", "concentration_time.png", "auc_by_sex.png"]:
            assert (report.parent / "static" / name).is_file()

    def test_only_report_outputs(self, result):
        out_dir = result["report_path"].parent
        files = {p.relative_to(out_dir).as_posix() for p in out_dir.rglob("*") if p.is_file()}
        assert files == {
            "report.html",
            "static/covariates_by_sex.png",
            "static/concentration_time.png",
            "static/auc_by_sex.png",
        }


class TestFailures:
    def test_missing_dm_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            generate(dm_path=tmp_path / "dm.csv", output_dir=tmp_path / "out")

    def test_no_dm_in_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(FileNotFoundError, match="dm.csv"):
            generate(output_dir=tmp_path / "out")
        assert not (tmp_path / "out" / "report.html").exists()

    def test_unmatched_subject_is_fatal(self, tmp_path):
        dm = tmp_path / "dm.csv"
        dm.write_text("SUBJECT,SEX,Age\n1,M,30\n2,F,31\n")
        with pytest.raises(ValueError, match="No demographic record"):
            generate(dm_path=dm, output_dir=tmp_path / "out")

    def test_bad_age_is_fatal(self, tmp_path):
        rows = ["SUBJECT,SEX,Age"] + [f"{i},M,30" for i in range(1, 12)] + ["12,F,unknown"]
        dm = tmp_path / "dm.csv"
        dm.write_text("\n".join(rows) + "\n")
        with pytest.raises(ValueError, match="subject 12"):
            generate(dm_path=dm, output_dir=tmp_path / "out")


class TestPlots:
    def test_static_figures(self, result):
        enriched, summary = result["enriched"], result["summary"]
        fig = plot_covariate_boxplots(enriched)
        assert len(fig.axes) == 4
        plt.close(fig)
        fig = plot_concentration_time(enriched)
        assert fig.axes[0].get_xlabel() == "Time since dose (h)"
        plt.close(fig)
        fig = plot_auc_by_group(summary)
        assert fig.axes[0].get_title() == "AUC by sex"
        plt.close(fig)

    def test_interactive_figures(self, result):
        fig = interactive_concentration_time(result["enriched"])
        assert len(fig.data) > 0
        assert fig.layout.xaxis.title.text == "Time since dose (h)"
        box = interactive_auc_by_group(result["summary"])
        assert box.data[0].type == "box"
