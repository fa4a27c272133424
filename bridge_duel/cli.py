# bridge_duel/cli.py
from __future__ import annotations

import argparse
import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from .actions import PlayerAction
from .agents import DuelAgent, HeuristicDuelAgent, RandomDuelAgent
from .config import settings
from .engine import build_observation
from .game_log import DealLog, write_deal_rows_csv
from .paths import ensure_results_dir, resolve_results_path
from .protocol import Message, MessageType
from .relay import LocalRelay, RelayEndpoint
from .replication import DuelSession
from .state import Phase, PlayerId

AGENT_CHOICES = ("random", "heuristic")
# Idle polls before the non-authoritative side asks for a snapshot.
STALL_POLLS = 50
MAX_POLLS_PER_DEAL = 5000


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Simulate two-player bridge duels between automated agents over an "
            "in-process relay and log per-deal results to a CSV file."
        )
    )

    parser.add_argument(
        "--deals",
        type=int,
        default=10,
        help="Number of completed deals per match (default: 10).",
    )
    parser.add_argument(
        "--matches",
        type=int,
        default=1,
        help="Number of independent matches to run concurrently (default: 1).",
    )
    parser.add_argument(
        "--host-agent",
        choices=AGENT_CHOICES,
        default="heuristic",
        help="Agent playing the host seat (default: heuristic).",
    )
    parser.add_argument(
        "--peer-agent",
        choices=AGENT_CHOICES,
        default="random",
        help="Agent playing the peer seat (default: random).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Base random seed for dealing and agents.",
    )
    parser.add_argument(
        "--trick-pause",
        type=float,
        default=0.0,
        help=(
            "Seconds a completed trick stays on the table before resolution "
            "(default: 0 for fast simulation; interactive play uses %s)."
            % settings.trick_pause
        ),
    )
    parser.add_argument(
        "--drop-rate",
        type=float,
        default=0.0,
        help=(
            "Probability that a game_action message is lost in transit, to "
            "exercise re-synchronization (default: 0)."
        ),
    )
    parser.add_argument(
        "--csv",
        type=str,
        default="bridge_duel_results.csv",
        help="Path to the output CSV file (default: bridge_duel_results.csv).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help="Logging level (DEBUG, INFO, WARNING, ...). Default: %(default)s.",
    )

    args = parser.parse_args(argv)
    if args.deals < 1 or args.matches < 1:
        parser.error("--deals and --matches must be at least 1")
    if not 0.0 <= args.drop_rate < 1.0:
        parser.error("--drop-rate must be in [0, 1)")
    if args.trick_pause < 0:
        parser.error("--trick-pause must not be negative")
    return args


def make_agent(name: str, seed: int) -> DuelAgent:
    rng = random.Random(seed)
    if name == "heuristic":
        return HeuristicDuelAgent(rng=rng)
    if name == "random":
        return RandomDuelAgent(rng=rng)
    raise ValueError(f"Unknown agent {name!r}")


def _next_action(session: DuelSession, agent: DuelAgent) -> Optional[PlayerAction]:
    """Ask the agent for a move if it is this session's player to act."""
    role = session.role
    state = session.state
    if role is None or session.parked:
        return None

    if state.phase == Phase.GAME_OVER:
        if not state.ready_for_next[role]:
            return PlayerAction.ready_next()
        return None

    if state.turn != role:
        return None

    observation = build_observation(state, role)
    if state.phase == Phase.BIDDING:
        if state.current_bid is None and state.pass_count >= 2:
            return None
        bid = agent.choose_bid(observation)
        return PlayerAction.make_bid(bid) if bid else PlayerAction.make_pass()

    if state.phase == Phase.PLAYING:
        if session.engine.has_pending_trick or not observation["legal_card_ids"]:
            return None
        return PlayerAction.play_card(agent.choose_card(observation))
    return None


async def play_match(
    match_index: int,
    *,
    args: argparse.Namespace,
) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    """Run one match to `args.deals` completed deals and return its rows."""
    loop = asyncio.get_running_loop()
    match_id = f"match-{match_index}"
    room_id = f"room-{match_index}"
    base_seed = args.seed + match_index * 1000
    drop_rng = random.Random(base_seed + 7)

    def drop_filter(_target: RelayEndpoint, message: Message) -> bool:
        return (
            message.type == MessageType.GAME_ACTION
            and drop_rng.random() < args.drop_rate
        )

    relay = LocalRelay(loop=loop, drop_filter=drop_filter if args.drop_rate else None)
    host_ep = relay.endpoint(f"{match_id}-host")
    peer_ep = relay.endpoint(f"{match_id}-peer")

    sessions = {
        PlayerId.HOST: DuelSession(
            host_ep, room_id, rng_seed=base_seed, scheduler=loop,
            trick_pause=args.trick_pause,
        ),
        PlayerId.PEER: DuelSession(
            peer_ep, room_id, scheduler=loop, trick_pause=args.trick_pause,
        ),
    }
    agents = {
        PlayerId.HOST: make_agent(args.host_agent, base_seed + 1),
        PlayerId.PEER: make_agent(args.peer_agent, base_seed + 2),
    }
    log = DealLog(
        match_id=match_id,
        agent_labels={PlayerId.HOST: args.host_agent, PlayerId.PEER: args.peer_agent},
    )

    host_ep.join(room_id)
    peer_ep.join(room_id)

    host = sessions[PlayerId.HOST]
    recorded = False
    idle_polls = 0
    polls_this_deal = 0
    poll_delay = args.trick_pause / 10 if args.trick_pause else 0

    while len(log.rows) < args.deals:
        await asyncio.sleep(0)

        if host.state.phase == Phase.GAME_OVER:
            if not recorded:
                recorded = log.record(host.state)
                polls_this_deal = 0
        else:
            recorded = False

        acted = False
        for role, session in sessions.items():
            action = _next_action(session, agents[role])
            if action is None:
                continue
            result = session.submit(action)
            if not result.ok:
                logging.debug("%s: %s rejected: %s", match_id, action, result.reason)
            acted = acted or result.ok

        polls_this_deal += 1
        if polls_this_deal > MAX_POLLS_PER_DEAL:
            raise RuntimeError(f"{match_id} made no progress; giving up")

        if acted:
            idle_polls = 0
            continue

        idle_polls += 1
        if idle_polls >= STALL_POLLS and not any(
            s.engine.has_pending_trick for s in sessions.values()
        ):
            # A lost message can leave one side waiting for a move it never saw.
            sessions[PlayerId.PEER].request_sync()
            idle_polls = 0
        if poll_delay:
            await asyncio.sleep(poll_delay)

    peer_ep.leave()
    host_ep.leave()

    stats = {
        "messages_relayed": relay.messages_relayed,
        "messages_dropped": relay.messages_dropped,
        "sync_requests": sum(s.sync_requests_sent for s in sessions.values()),
        "snapshots_adopted": sum(s.snapshots_adopted for s in sessions.values()),
    }
    return log.rows, stats


async def async_main(argv: List[str] | None = None) -> None:
    args = parse_args(argv)
    ensure_results_dir()
    csv_path = resolve_results_path(args.csv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logging.info("Host agent: %s, peer agent: %s", args.host_agent, args.peer_agent)
    logging.info("Matches: %d x %d deals", args.matches, args.deals)
    logging.info("Output CSV: %s", csv_path)

    tasks = [
        asyncio.create_task(play_match(match_index, args=args))
        for match_index in range(args.matches)
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    all_rows: List[Dict[str, Any]] = []
    failed = 0
    for match_index, result in enumerate(results):
        if isinstance(result, Exception):
            logging.error("Match %d failed: %s", match_index, result)
            failed += 1
            continue
        rows, stats = result
        all_rows.extend(rows)
        logging.info(
            "Match %d: %d deals, %d messages (%d dropped), %d sync requests, "
            "%d snapshots adopted",
            match_index,
            len(rows),
            stats["messages_relayed"],
            stats["messages_dropped"],
            stats["sync_requests"],
            stats["snapshots_adopted"],
        )

    write_deal_rows_csv(all_rows, csv_path)
    logging.info(
        "Finished %d/%d matches; wrote %d rows to %s",
        args.matches - failed,
        args.matches,
        len(all_rows),
        csv_path,
    )


def main(argv: List[str] | None = None) -> None:
    asyncio.run(async_main(argv))


if __name__ == "__main__":
    main()
