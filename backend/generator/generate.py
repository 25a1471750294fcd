"""CLI entry point: loads the PK and demographics data, runs the pipeline, writes the report.

Usage:
    cd backend && python -m generator.generate

Input and output locations come from config (PK_DM_CSV, PK_OUTPUT_DIR, ...).
"""

import logging
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import CI_ALPHA, OUTPUT_DIR
from services.study_loader import load_reference_dataset, load_demographics
from services.analysis.override_reader import load_age_overrides
from services.analysis.demographics import clean_demographics
from services.analysis.merge import merge_demographics, assert_join_complete
from services.analysis.auc import build_subject_summary, find_inconsistent_fields
from services.analysis.statistics import describe, describe_by, compare_two_groups
from services.analysis.provenance import generate_provenance_messages
from generator.plots import (
    plot_covariate_boxplots,
    plot_concentration_time,
    plot_auc_by_group,
    save_figure,
    interactive_concentration_time,
    interactive_auc_by_group,
    figure_to_html,
)
from generator.static_charts import (
    generate_stats_table,
    generate_comparison_block,
    generate_summary_table,
    generate_provenance_list,
    generate_report_html,
)

REPORT_TITLE = "Theophylline exposure (AUC) report"


def generate(
    dm_path: Path | str | None = None,
    output_dir: Path | str | None = None,
    alpha: float | None = None,
    reference_path: Path | str | None = None,
) -> dict:
    """Run the full pipeline and write report.html + static/*.png.

    Returns the intermediate tables and statistics.
    """
    alpha = CI_ALPHA if alpha is None else alpha
    out_dir = Path(output_dir) if output_dir is not None else OUTPUT_DIR
    static_dir = out_dir / "static"
    print("=== Generating AUC report ===")

    # Phase 1: Load
    print("Phase 1: Loading data...")
    obs = load_reference_dataset(reference_path)
    dm_raw = load_demographics(dm_path)
    print(f"  {len(obs)} observations, {obs['subject'].nunique()} subjects; {len(dm_raw)} demographic records")

    # Phase 2: Clean demographics
    print("Phase 2: Cleaning demographics...")
    overrides = load_age_overrides()
    dm = clean_demographics(dm_raw, overrides)
    n_override = int((dm["age_rule"] == "override").sum())
    print(f"  {len(dm)} subjects cleaned, {n_override} age override(s) applied")

    # Phase 3: Merge (left join, must be complete)
    print("Phase 3: Merging demographics onto observations...")
    enriched = assert_join_complete(merge_demographics(obs, dm))
    print(f"  {len(enriched)} enriched rows")

    # Phase 4: Per-subject AUC
    print("Phase 4: Computing per-subject AUC...")
    summary = build_subject_summary(enriched)
    inconsistent = find_inconsistent_fields(enriched)
    print(f"  {len(summary)} subjects, mean AUC {summary['auc'].mean():.2f}")

    # Phase 5: Statistics
    print("Phase 5: Computing statistics...")
    overall = describe(summary["auc"], alpha=alpha)
    by_sex = describe_by(summary, "auc", "sex", alpha=alpha)
    comparison = compare_two_groups(summary, "auc", "sex")
    for g in by_sex:
        print(f"  sex={g.group}: n={g.stats.n}, mean={g.stats.mean:.2f}")
    provenance = generate_provenance_messages(dm_raw, dm, obs, summary, overrides, inconsistent)

    # Phase 6: Figures
    print("Phase 6: Rendering figures...")
    images = [
        ("Covariates by sex", save_figure(plot_covariate_boxplots(enriched), static_dir / "covariates_by_sex.png")),
        ("Concentration-time profiles", save_figure(plot_concentration_time(enriched), static_dir / "concentration_time.png")),
        ("AUC by sex", save_figure(plot_auc_by_group(summary), static_dir / "auc_by_sex.png")),
    ]
    interactive = [
        figure_to_html(interactive_concentration_time(enriched), include_plotlyjs=True),
        figure_to_html(interactive_auc_by_group(summary)),
    ]

    # Write report
    print("Writing report...")
    report_html = generate_report_html(
        REPORT_TITLE,
        sections=[
            generate_stats_table("AUC (mg·h/L)", overall, by_sex),
            generate_comparison_block(comparison),
            generate_summary_table(summary),
            generate_provenance_list(provenance),
        ],
        images=[(caption, path.relative_to(out_dir).as_posix()) for caption, path in images],
        interactive=interactive,
    )
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / "report.html"
    with open(report_path, "w", encoding="utf-8") as f:
        f.write(report_html)
    print(f"  wrote {report_path.name}")

    print(f"\n=== Generation complete: {out_dir} ===")
    if overall.ci_lower is not None:
        ci_pct = round((1 - alpha) * 100)
        print(f"  AUC mean {overall.mean:.2f}, {ci_pct}% CI [{overall.ci_lower:.2f}, {overall.ci_upper:.2f}]")

    return {
        "observations": obs,
        "demographics": dm,
        "enriched": enriched,
        "summary": summary,
        "overall": overall,
        "by_sex": by_sex,
        "comparison": comparison,
        "provenance": provenance,
        "report_path": report_path,
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        generate()
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)
