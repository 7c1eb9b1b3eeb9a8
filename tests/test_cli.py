"""
Command-line entry point and plotting.
"""

import pandas as pd
from typer.testing import CliRunner

from tycoon.cli import app
from tycoon.persistence import load_state
from tycoon.visualize import plot_overview

runner = CliRunner()


def test_simulate_writes_outputs(tmp_path):
    csv_path = tmp_path / "sessions.csv"
    save_path = tmp_path / "practice.json"
    result = runner.invoke(
        app,
        ["simulate", "--days", "2", "--seed", "3", "--csv-out", str(csv_path), "--save-out", str(save_path)],
    )

    assert result.exit_code == 0, result.output
    assert "Practice KPIs" in result.output
    assert "session_id" in pd.read_csv(csv_path).columns
    assert load_state(save_path).time.day == 3


def test_plot_overview_saves_png(tmp_path):
    df = pd.DataFrame(
        {
            "session_id": ["s1", "s2", "s3"],
            "therapist_id": ["t1", "t1", "t2"],
            "condition": ["anxiety", "trauma", "anxiety"],
            "day": [1, 1, 2],
            "status": ["completed", "completed", "cancelled"],
            "quality": [0.8, 0.6, None],
        }
    )
    out = tmp_path / "overview.png"
    plot_overview(df, outfile=out)
    assert out.exists()
