"""Portfolio decision engine."""

from trador.engine.ledger import Ledger
from trador.engine.recorder import TradeRecorder
from trador.engine.scheduler import TradingEngine, validate_address
from trador.engine.scorer import ScoredCandidate, rank_candidates, score_candidate, select_candidate
from trador.engine.strategy import Decision, PositionPhase, evaluate

__all__ = [
    "Ledger",
    "TradeRecorder",
    "TradingEngine",
    "validate_address",
    "ScoredCandidate",
    "rank_candidates",
    "score_candidate",
    "select_candidate",
    "Decision",
    "PositionPhase",
    "evaluate",
]
