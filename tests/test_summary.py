# tests/test_summary.py
import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from bridge_duel.game_log import FIELDNAMES
from bridge_duel.results.summary import (
    contract_success_by_level,
    load_results,
    main,
    plot_success_by_level,
    win_rate_by_agent,
)


def _write_results(path):
    rows = [
        {"match_id": "m", "deal_index": 0, "declarer": "host", "contract_level": 1,
         "succeeded": True, "winner": "host", "host_agent": "heuristic", "peer_agent": "random"},
        {"match_id": "m", "deal_index": 1, "declarer": "peer", "contract_level": 1,
         "succeeded": False, "winner": "host", "host_agent": "heuristic", "peer_agent": "random"},
        {"match_id": "m", "deal_index": 2, "declarer": "host", "contract_level": 2,
         "succeeded": False, "winner": "peer", "host_agent": "heuristic", "peer_agent": "random"},
        {"match_id": "m", "deal_index": 3, "declarer": "peer", "contract_level": 2,
         "succeeded": True, "winner": "peer", "host_agent": "heuristic", "peer_agent": "random"},
    ]
    pd.DataFrame(rows, columns=[f for f in FIELDNAMES if f in rows[0]]).to_csv(path, index=False)
    return path


def test_load_results_parses_booleans(tmp_path):
    df = load_results(_write_results(tmp_path / "r.csv"))
    assert df["succeeded"].tolist() == [True, False, False, True]


def test_load_results_requires_columns(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"match_id": ["m"]}).to_csv(path, index=False)
    with pytest.raises(ValueError):
        load_results(path)


def test_contract_success_by_level(tmp_path):
    df = load_results(_write_results(tmp_path / "r.csv"))
    stats = contract_success_by_level(df).set_index("contract_level")

    assert stats.loc[1, "deals"] == 2
    assert stats.loc[1, "made"] == 1
    assert stats.loc[1, "rate"] == pytest.approx(0.5)
    assert stats.loc[1, "ci95"] == pytest.approx(1.96 * (0.25 / 2) ** 0.5)


def test_win_rate_by_agent(tmp_path):
    df = load_results(_write_results(tmp_path / "r.csv"))
    rates = win_rate_by_agent(df).set_index("agent")

    assert rates.loc["heuristic", "deals"] == 4
    assert rates.loc["heuristic", "won"] == 2
    assert rates.loc["random", "win_rate"] == pytest.approx(0.5)


def test_plot_and_main_save_figures(tmp_path):
    csv_path = _write_results(tmp_path / "r.csv")
    df = load_results(csv_path)

    out = tmp_path / "levels.png"
    plot_success_by_level(contract_success_by_level(df), out)
    assert out.exists()

    out_main = tmp_path / "main.png"
    main([str(csv_path), "--plot", str(out_main)])
    assert out_main.exists()
