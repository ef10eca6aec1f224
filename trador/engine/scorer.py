"""Candidate scoring for picking the next asset to monitor."""

from typing import Optional

from pydantic import BaseModel, Field

from trador.models import TokenSnapshot

# Minimum score a candidate needs to be selected
MIN_ACCEPT_SCORE = -20

# Age assumed when the upstream feed does not report one
DEFAULT_AGE_HOURS = 0.1


class ScoredCandidate(BaseModel):
    """A snapshot with its heuristic score and the score breakdown."""

    snapshot: TokenSnapshot = Field(..., description="Candidate snapshot")
    score: int = Field(..., description="Total score")
    momentum: int = Field(..., description="1h price change component")
    pressure: int = Field(..., description="Buy/sell ratio component")
    freshness: int = Field(..., description="Age component")

    model_config = {"frozen": True}


def momentum_score(change_1h: Optional[float]) -> int:
    p = change_1h or 0.0
    if 0 < p < 15:
        return 35
    if 15 <= p < 50:
        return 20
    if p >= 50:
        return -10
    if -5 <= p <= 0:
        return 10
    return -50


def buy_ratio(buys: int, sells: int) -> float:
    """Fraction of transactions that were buys, 0.5 with no transactions."""
    total = buys + sells
    return buys / total if total > 0 else 0.5


def pressure_score(buys: int, sells: int) -> int:
    ratio = buy_ratio(buys, sells)
    if ratio > 0.60:
        return 30
    if ratio > 0.50:
        return 10
    return -10


def freshness_score(age_hours: Optional[float]) -> int:
    age = age_hours if age_hours is not None else DEFAULT_AGE_HOURS
    if age < 24:
        return 25
    if age < 72:
        return 10
    return 0


def score_candidate(snapshot: TokenSnapshot) -> ScoredCandidate:
    """Score one candidate snapshot.

    Args:
        snapshot: Candidate market snapshot.

    Returns:
        The scored candidate.
    """
    momentum = momentum_score(snapshot.price_change_1h)
    pressure = pressure_score(snapshot.txns_24h.buys, snapshot.txns_24h.sells)
    freshness = freshness_score(snapshot.age_hours)
    return ScoredCandidate(
        snapshot=snapshot,
        score=momentum + pressure + freshness,
        momentum=momentum,
        pressure=pressure,
        freshness=freshness,
    )


def rank_candidates(candidates: list[TokenSnapshot]) -> list[ScoredCandidate]:
    """Score and rank candidates, best first.

    The sort is stable, so among equal scores the candidate that came first
    in the input keeps its place.
    """
    scored = [score_candidate(c) for c in candidates]
    return sorted(scored, key=lambda c: c.score, reverse=True)


def select_candidate(candidates: list[TokenSnapshot]) -> Optional[ScoredCandidate]:
    """Pick the best candidate, or None when nothing scores above the floor."""
    ranked = rank_candidates(candidates)
    if ranked and ranked[0].score > MIN_ACCEPT_SCORE:
        return ranked[0]
    return None
