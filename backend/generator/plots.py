"""Static (matplotlib/seaborn) and interactive (plotly) figures for the report."""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import plotly.express as px
import seaborn as sns
from matplotlib.figure import Figure

from config import COVARIATES

DPI = 120


def _group_order(df: pd.DataFrame, by: str) -> list:
    return sorted(df[by].dropna().unique())


def plot_covariate_boxplots(
    enriched: pd.DataFrame,
    by: str = "sex",
    covariates: dict[str, str] | None = None,
) -> Figure:
    """One boxplot panel per covariate, split by `by`."""
    covariates = covariates or COVARIATES
    cols = [c for c in covariates if c in enriched.columns]
    order = _group_order(enriched, by)

    fig, axes = plt.subplots(1, len(cols), figsize=(3.2 * len(cols), 4), squeeze=False)
    for ax, col in zip(axes[0], cols):
        sns.boxplot(data=enriched, x=by, y=col, order=order, hue=by, hue_order=order,
                    palette="Set2", legend=False, ax=ax)
        ax.set_xlabel("Sex" if by == "sex" else by)
        ax.set_ylabel(covariates[col])
        ax.grid(True, axis="y", alpha=0.3)
    fig.suptitle(f"Covariates by {by}")
    fig.tight_layout()
    return fig


def plot_concentration_time(enriched: pd.DataFrame) -> Figure:
    """Concentration vs time, one line per subject, colour = dose, marker = sex."""
    df = enriched.sort_values(["subject", "time"])
    fig, ax = plt.subplots(figsize=(9, 5))
    sns.lineplot(
        data=df, x="time", y="conc",
        hue="dose", style="sex", units="subject", estimator=None,
        markers=True, dashes=False, palette="viridis", ax=ax,
    )
    ax.set_xlabel("Time since dose (h)")
    ax.set_ylabel("Concentration (mg/L)")
    ax.set_title("Concentration-time profiles")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper right", fontsize=8)
    fig.tight_layout()
    return fig


def plot_auc_by_group(summary: pd.DataFrame, by: str = "sex") -> Figure:
    """AUC distribution per group with the individual subjects overlaid."""
    order = _group_order(summary, by)
    fig, ax = plt.subplots(figsize=(5, 4))
    sns.boxplot(data=summary, x=by, y="auc", order=order, hue=by, hue_order=order,
                palette="Set2", legend=False, ax=ax)
    sns.stripplot(data=summary, x=by, y="auc", order=order, color="black", size=5, ax=ax)
    ax.set_ylabel("AUC (mg·h/L)")
    ax.set_title(f"AUC by {by}")
    ax.grid(True, axis="y", alpha=0.3)
    fig.tight_layout()
    return fig


def save_figure(fig: Figure, path: Path) -> Path:
    """Write a figure as PNG and release it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    return path


# ─── Interactive ──────────────────────────────────────────────


def interactive_concentration_time(enriched: pd.DataFrame):
    """Plotly version of plot_concentration_time with per-point hover details."""
    df = enriched.sort_values(["subject", "time"]).copy()
    df["dose_label"] = df["dose"].map(lambda d: f"{d:g} mg/kg")
    doses = sorted(df["dose"].dropna().unique())
    labels = [f"{d:g} mg/kg" for d in doses]
    if len(doses) > 1:
        colors = px.colors.sample_colorscale("Viridis", [i / (len(doses) - 1) for i in range(len(doses))])
    else:
        colors = px.colors.sample_colorscale("Viridis", [0.5])

    fig = px.line(
        df, x="time", y="conc",
        color="dose_label", line_group="subject", symbol="sex",
        markers=True,
        category_orders={"dose_label": labels},
        color_discrete_sequence=colors,
        hover_data=["subject", "weight", "age"],
        labels={"time": "Time since dose (h)", "conc": "Concentration (mg/L)", "dose_label": "Dose"},
        title="Concentration-time profiles",
    )
    return fig


def interactive_auc_by_group(summary: pd.DataFrame, by: str = "sex"):
    return px.box(
        summary, x=by, y="auc", points="all",
        category_orders={by: _group_order(summary, by)},
        hover_data=["subject", "dose", "weight", "age"],
        labels={"auc": "AUC (mg·h/L)"},
        title=f"AUC by {by}",
    )


def figure_to_html(fig, include_plotlyjs: bool | str = False) -> str:
    """HTML fragment for embedding in the report."""
    return fig.to_html(full_html=False, include_plotlyjs=include_plotlyjs)
