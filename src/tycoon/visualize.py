"""
Lightweight visualizations of a simulated practice.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib

# Use a non-interactive backend to avoid display issues in headless environments.
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd


def plot_overview(df: pd.DataFrame, outfile: Optional[Path] = None) -> None:
    fig, axes = plt.subplots(2, 2, figsize=(12, 8))
    completed = df[df["status"] == "completed"]

    # Sessions delivered per day
    completed.groupby("day")["session_id"].count().plot(ax=axes[0, 0], marker="o")
    axes[0, 0].set_title("Completed sessions per day")
    axes[0, 0].set_ylabel("Sessions")

    # Quality distribution
    completed["quality"].plot(kind="hist", bins=20, range=(0, 1), ax=axes[0, 1], color="tab:green")
    axes[0, 1].set_title("Session quality")

    # Condition mix
    df["condition"].value_counts().plot(kind="bar", ax=axes[1, 0], color="tab:purple")
    axes[1, 0].set_title("Booked sessions by condition")

    # Session outcomes per therapist
    df.groupby(["therapist_id", "status"]).size().unstack(fill_value=0).plot(
        kind="bar", stacked=True, ax=axes[1, 1]
    )
    axes[1, 1].set_title("Session status by therapist")

    plt.tight_layout()
    if outfile:
        plt.savefig(outfile, dpi=150)
    else:
        plt.show()
    plt.close(fig)
