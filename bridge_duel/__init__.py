"""Two-player bridge duel: rules engine and replicated game sessions."""

__version__ = "0.1.0"

from .actions import ActionType, PlayerAction
from .cards import Card, Deck, generate_deck, shuffle_deck, sort_hand
from .engine import ActionResult, GameEngine, apply_action, new_deal, resolve_trick
from .errors import BridgeDuelError, InvariantViolation, ProtocolError
from .replication import DuelSession
from .rules import can_play_card, is_valid_bid, winner_of_trick
from .state import Bid, GameState, Phase, PlayerId
