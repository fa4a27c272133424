# bridge_duel/results/summary.py
from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

REQUIRED_COLUMNS = {
    "match_id",
    "declarer",
    "contract_level",
    "succeeded",
    "winner",
    "host_agent",
    "peer_agent",
}


def load_results(csv_path: str | Path) -> pd.DataFrame:
    """Load a simulator CSV and normalise the boolean column."""
    df = pd.read_csv(csv_path)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(sorted(missing))}")
    # csv writes booleans as "True"/"False" text.
    df["succeeded"] = df["succeeded"].astype(str).str.lower() == "true"
    return df


def contract_success_by_level(df: pd.DataFrame) -> pd.DataFrame:
    """
    Success rate per contract level with a 95% confidence interval.

    Columns: contract_level, deals, made, rate, ci95.
    """
    stats = (
        df.groupby("contract_level")["succeeded"]
          .agg(deals="count", made="sum")
          .reset_index()
    )
    stats["rate"] = stats["made"] / stats["deals"]
    # Normal approximation: 1.96 * sqrt(p(1-p)/n)
    stats["ci95"] = 1.96 * np.sqrt(stats["rate"] * (1 - stats["rate"]) / stats["deals"])
    return stats


def win_rate_by_agent(df: pd.DataFrame) -> pd.DataFrame:
    """Share of deals won by each agent, counting both seats it sat in."""
    winners = np.where(df["winner"] == "host", df["host_agent"], df["peer_agent"])
    seats = pd.concat([df["host_agent"], df["peer_agent"]])
    played = seats.value_counts()
    won = pd.Series(winners).value_counts()
    out = pd.DataFrame({"deals": played, "won": won}).fillna(0)
    out["won"] = out["won"].astype(int)
    out["win_rate"] = out["won"] / out["deals"]
    return out.rename_axis("agent").reset_index()


def plot_success_by_level(
    stats: pd.DataFrame, output_path: Optional[str | Path] = None
) -> None:
    plt.figure(figsize=(8, 5))
    plt.errorbar(
        stats["contract_level"],
        stats["rate"],
        yerr=stats["ci95"],
        marker="o",
        capsize=3,
    )
    plt.xlabel("Contract level")
    plt.ylabel("Contract made")
    plt.ylim(0, 1)
    plt.title("Contract success rate by level with 95% CI")
    plt.grid(True)
    plt.tight_layout()
    if output_path:
        plt.savefig(output_path, dpi=150)
        plt.close()
    else:
        plt.show()


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Summarize a bridge_duel simulator CSV."
    )
    parser.add_argument("csv", help="CSV written by bridge_duel.cli")
    parser.add_argument(
        "--plot",
        default=None,
        help="Save the success-rate plot to this path instead of showing it.",
    )
    args = parser.parse_args(argv)

    df = load_results(args.csv)
    level_stats = contract_success_by_level(df)
    print(level_stats.to_string(index=False))
    print()
    print(win_rate_by_agent(df).to_string(index=False))
    plot_success_by_level(level_stats, args.plot)


if __name__ == "__main__":
    main()
