"""Generate styled HTML for the exposure report.

Produces a self-contained HTML document with inline CSS. Static figures are
referenced as PNG files next to the report; interactive figures are embedded
as plotly fragments.
"""

import html

import pandas as pd

from models.schemas import DescriptiveStats, GroupComparison, GroupStats

FONT = "font-family:system-ui,-apple-system,sans-serif;"
TH = "text-align:right;padding:4px 10px;font-size:12px;color:#374151;border-bottom:1px solid #d1d5db;"
TD = "text-align:right;padding:4px 10px;font-size:12px;color:#1f2937;border-bottom:1px solid #f3f4f6;"

STAT_COLUMNS = [
    ("n", "N"),
    ("mean", "Mean"),
    ("sd", "SD"),
    ("min", "Min"),
    ("q1", "Q1"),
    ("median", "Median"),
    ("q3", "Q3"),
    ("max", "Max"),
]


def _fmt(value, digits: int = 2) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return "&ndash;"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return html.escape(str(value))


def generate_stats_table(
    title: str,
    overall: DescriptiveStats,
    groups: list[GroupStats],
) -> str:
    """Descriptive statistics: one row for all subjects, one per group."""
    ci_pct = round((1 - overall.alpha) * 100)
    header = "".join(f"<th style='{TH}'>{label}</th>" for _, label in STAT_COLUMNS)
    header = f"<th style='{TH}text-align:left;'>Group</th>{header}<th style='{TH}'>{ci_pct}% CI</th>"

    def row(label: str, s: DescriptiveStats) -> str:
        cells = "".join(f"<td style='{TD}'>{_fmt(getattr(s, key))}</td>" for key, _ in STAT_COLUMNS)
        if s.ci_lower is not None:
            ci = f"[{s.ci_lower:.2f}, {s.ci_upper:.2f}]"
        else:
            ci = "&ndash;"
        return (f"<tr><td style='{TD}text-align:left;font-weight:500;'>{html.escape(label)}</td>"
                f"{cells}<td style='{TD}'>{ci}</td></tr>")

    rows = [row("All", overall)]
    for g in groups:
        rows.append(row(f"{g.group_by} = {g.group}", g.stats))

    return f"""
<div style="margin-bottom:20px;">
  <div style="font-size:14px;font-weight:600;color:#1f2937;margin-bottom:6px;">{html.escape(title)}</div>
  <table style="border-collapse:collapse;">
    <thead><tr>{header}</tr></thead>
    <tbody>{"".join(rows)}</tbody>
  </table>
</div>"""


def generate_comparison_block(comparison: GroupComparison | None) -> str:
    if comparison is None:
        return "<div style='padding:8px 0;color:#888;font-size:12px;'>Group comparison not available.</div>"
    a, b = (html.escape(g) for g in comparison.groups)
    return f"""
<div style="font-size:12px;color:#374151;margin-bottom:20px;">
  <div style="font-size:14px;font-weight:600;color:#1f2937;margin-bottom:6px;">
    {html.escape(comparison.variable.upper())}: {a} vs {b}
  </div>
  Welch t-test: t = {_fmt(comparison.welch_statistic, 3)}, p = {_fmt(comparison.welch_p_value, 4)}
  &nbsp;|&nbsp;
  Mann-Whitney U: U = {_fmt(comparison.mwu_statistic, 1)}, p = {_fmt(comparison.mwu_p_value, 4)}
</div>"""


def generate_summary_table(summary: pd.DataFrame) -> str:
    """Per-subject summary (one row per subject)."""
    if summary.empty:
        return "<div style='padding:16px;color:#888;font-size:13px;'>No subjects.</div>"
    cols = [c for c in ["subject", "sex", "age", "weight", "dose", "n_points", "cmax", "tmax", "auc"]
            if c in summary.columns]
    header = "".join(f"<th style='{TH}'>{html.escape(c)}</th>" for c in cols)
    body = []
    for rec in summary[cols].to_dict(orient="records"):
        body.append("<tr>" + "".join(f"<td style='{TD}'>{_fmt(rec[c])}</td>" for c in cols) + "</tr>")
    return f"""
<div style="margin-bottom:20px;">
  <div style="font-size:14px;font-weight:600;color:#1f2937;margin-bottom:6px;">Subject summary</div>
  <table style="border-collapse:collapse;">
    <thead><tr>{header}</tr></thead>
    <tbody>{"".join(body)}</tbody>
  </table>
</div>"""


def generate_provenance_list(messages: list[dict]) -> str:
    if not messages:
        return ""
    items = []
    for msg in messages:
        color = "#b45309" if msg.get("icon") == "warning" else "#2563eb"
        items.append(
            f"<li style='margin-bottom:4px;'><span style='color:{color};font-weight:600;'>"
            f"{html.escape(msg['rule_id'])}</span> {html.escape(msg['message'])}</li>"
        )
    return f"""
<div style="font-size:12px;color:#374151;margin-bottom:20px;">
  <div style="font-size:14px;font-weight:600;color:#1f2937;margin-bottom:6px;">Data provenance</div>
  <ul style="padding-left:18px;margin:0;">{"".join(items)}</ul>
</div>"""


def generate_report_html(
    title: str,
    sections: list[str],
    images: list[tuple[str, str]],
    interactive: list[str],
) -> str:
    """Assemble the full report document.

    Args:
        sections: HTML fragments from the generate_* functions.
        images: (caption, relative PNG path) pairs.
        interactive: plotly HTML fragments.
    """
    figs = "".join(
        f"""
  <figure style="margin:0 0 20px 0;">
    <img src="{html.escape(src)}" alt="{html.escape(caption)}" style="max-width:100%;">
    <figcaption style="font-size:11px;color:#6b7280;">{html.escape(caption)}</figcaption>
  </figure>"""
        for caption, src in images
    )
    live = "".join(f"<div style='margin-bottom:20px;'>{frag}</div>" for frag in interactive)
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body style="{FONT}max-width:1100px;margin:24px auto;padding:0 16px;">
  <h1 style="font-size:18px;color:#111827;">{html.escape(title)}</h1>
  {"".join(sections)}
  <h2 style="font-size:15px;color:#111827;">Figures</h2>
  {figs}
  <h2 style="font-size:15px;color:#111827;">Interactive figures</h2>
  {live}
</body>
</html>"""
