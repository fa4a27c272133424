# bridge_duel/game_log.py
from __future__ import annotations

import csv
from typing import Any, Dict, Iterable, List, Optional

from .rules import contract_succeeded, round_winner
from .state import GameState, Phase, PlayerId

FIELDNAMES = [
    "match_id",
    "deal_index",
    "dealer",
    "declarer",
    "contract_level",
    "contract_suit",
    "contract_target",
    "host_tricks",
    "peer_tricks",
    "tricks_played",
    "succeeded",
    "winner",
    "host_agent",
    "peer_agent",
]


def _is_deal_complete(state: GameState) -> bool:
    """Return True if the deal reached GAME_OVER with a contract in place."""
    return (
        state.phase == Phase.GAME_OVER
        and state.declarer is not None
        and state.current_bid is not None
    )


def build_deal_row(
    state: GameState,
    *,
    match_id: Optional[str] = None,
    deal_index: int = 0,
    agent_labels: Optional[Dict[PlayerId, str]] = None,
) -> Dict[str, Any]:
    """
    Summarize one finished deal as a row keyed by FIELDNAMES.

    Raises ValueError if the deal is not over.
    """
    if not _is_deal_complete(state):
        raise ValueError("Deal is not complete")

    labels = agent_labels or {}
    return {
        "match_id": match_id,
        "deal_index": deal_index,
        "dealer": state.dealer.value,
        "declarer": state.declarer.value,
        "contract_level": state.current_bid.level,
        "contract_suit": state.current_bid.suit,
        "contract_target": state.contract_target,
        "host_tricks": state.tricks[PlayerId.HOST],
        "peer_tricks": state.tricks[PlayerId.PEER],
        "tricks_played": state.tricks_played,
        "succeeded": contract_succeeded(state),
        "winner": round_winner(state).value,
        "host_agent": labels.get(PlayerId.HOST),
        "peer_agent": labels.get(PlayerId.PEER),
    }


class DealLog:
    """Collects one row per finished deal, skipping deals that never finished."""

    def __init__(
        self,
        match_id: Optional[str] = None,
        agent_labels: Optional[Dict[PlayerId, str]] = None,
    ) -> None:
        self.match_id = match_id
        self.agent_labels = agent_labels
        self.rows: List[Dict[str, Any]] = []

    def record(self, state: GameState) -> bool:
        if not _is_deal_complete(state):
            return False
        self.rows.append(
            build_deal_row(
                state,
                match_id=self.match_id,
                deal_index=len(self.rows),
                agent_labels=self.agent_labels,
            )
        )
        return True


def write_deal_rows_csv(rows: Iterable[Dict[str, Any]], path) -> None:
    """
    Write deal rows to a CSV file.

    `path` can be a string or any path-like object accepted by `open`.
    """
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for row in rows:
            writer.writerow({field: row.get(field) for field in FIELDNAMES})
