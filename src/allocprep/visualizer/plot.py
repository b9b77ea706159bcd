# src/allocprep/visualizer/plot.py
"""
Quality summary chart.

Responsibilities:
- Aggregate findings into an entity x kind count table.
- Enforce headless backend (Agg) and figure export parameters (DPI, size).
- Render a stacked bar chart with the quality score in the title.
- Save PNG to the requested out_path and return that Path.
"""

from __future__ import annotations

# --- Standard library ---
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import colorcet as cc

# --- Third-party (no pyplot here!) ---
import matplotlib
import pandas as pd
import seaborn as sns

# --- Project imports ---
from allocprep.errors import VisualizationError
from allocprep.schemas.models import ENTITY_NAMES, Config, Finding

# (1) Enforce headless backend for environments without display
matplotlib.use("Agg")

logger = logging.getLogger(__name__)

KINDS = ("error", "warning", "info")


def findings_table(findings: Sequence[Finding]) -> pd.DataFrame:
    """
    @brief
    Count findings per entity and kind.

    @returns
        DataFrame indexed by entity (clients, workers, tasks) with one column
        per kind (error, warning, info); missing combinations are 0.
    """
    df = pd.DataFrame(
        [{"entity": f.entity, "kind": f.kind} for f in findings], columns=["entity", "kind"]
    )
    table = pd.crosstab(df["entity"], df["kind"]) if not df.empty else pd.DataFrame()
    table = table.reindex(index=list(ENTITY_NAMES), columns=list(KINDS), fill_value=0)
    return table.fillna(0).astype(int)


def _extract_visual_params(cfg: Config | Any) -> tuple[float, float, int]:
    """
    @brief
    Extract visual rendering parameters from configuration.

    @details
    Reads cfg.visual.{width, height, dpi} if available, otherwise falls back
    to default values suitable for PNG export.
    """
    width, height, dpi = 12.0, 6.0, 120
    visual = getattr(cfg, "visual", None)
    if visual is not None:
        width = float(getattr(visual, "width", width))
        height = float(getattr(visual, "height", height))
        dpi = int(getattr(visual, "dpi", dpi))
    return width, height, dpi


def plot_quality_summary(
    findings: Sequence[Finding], score: float, cfg: Config | Any, out_path: Path
) -> Path:
    """
    @brief
    Render findings per entity as a stacked bar chart and save it to PNG.

    @details
    Steps:
        (1) Aggregate findings into counts per entity and kind.
        (2) Ensure output directory exists.
        (3) Extract visual parameters from configuration.
        (4) Draw stacked bars (one colour per kind) with score in the title.
        (5) Save resulting figure to PNG.

    @params
        findings : Sequence[Finding]
            Current findings snapshot (may be empty).
        score : float
            Quality score in [0, 100].
        cfg : Config | Any
            Configuration object with optional visual section.
        out_path : Path
            Destination path for PNG output.

    @returns
        Absolute path to saved PNG file.

    @raises
        VisualizationError if the directory cannot be created or the figure
        cannot be saved.
    """
    from matplotlib import pyplot as plt

    # (1) Aggregate
    table = findings_table(findings)

    # (2) Prepare output directory
    out_path = Path(out_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise VisualizationError(
            f"Cannot create output directory: {out_path.parent} ({exc})",
            source="visualizer.plot.plot_quality_summary",
            suggested_action="Check filesystem permissions or choose another output path",
        ) from exc

    # (3) Figure parameters
    width, height, dpi = _extract_visual_params(cfg)

    # (4) Stacked bars per kind
    palette = sns.color_palette(cc.glasbey_dark, n_colors=len(KINDS))
    fig, ax = plt.subplots(nrows=1, ncols=1)
    fig.set_size_inches(w=width, h=height)
    bottom = [0] * len(table.index)
    for color, kind in zip(palette, KINDS):
        values = table[kind].tolist()
        ax.bar(
            table.index.tolist(),
            values,
            bottom=bottom,
            color=color,
            edgecolor="black",
            linewidth=1,
            label=kind,
        )
        bottom = [b + v for b, v in zip(bottom, values)]

    ax.set_ylabel("findings")
    ax.legend(title="kind")
    ax.title.set_text(f"Data quality {score:.1f}/100 ({len(findings)} findings)")

    # (5) Export
    try:
        fig.tight_layout()
        fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    except OSError as exc:
        raise VisualizationError(
            f"Failed to save figure: {out_path} ({exc})",
            source="visualizer.plot.plot_quality_summary",
            suggested_action="Check disk space and image backend settings",
        ) from exc
    finally:
        plt.close(fig)

    logger.info("Quality summary plot saved: %s", out_path)
    return out_path.resolve()


__all__ = ["plot_quality_summary", "findings_table"]
