from typing import Iterable, Sequence

from agriquiz.models import (
    DatasetRecord,
    GameResult,
    Player,
    PlayerScore,
    TopCountry,
    normalize_key,
)

TOP_COUNTRIES_LIMIT = 5


def _percent(part: float, total: float) -> float:
    return (part / total) * 100 if total > 0 else 0.0


def score_game(records: Sequence[DatasetRecord], players: Iterable[Player],
               top_limit: int = TOP_COUNTRIES_LIMIT) -> GameResult:
    """Score a finished game against one dataset slice.

    The world total is the sum over every record in the slice, not just the
    picked countries. A pick with no matching record contributes nothing.
    Both rankings use stable sorts, so ties keep roster order and dataset
    order respectively. Players are read, never mutated.
    """
    total_world = sum(r.value for r in records)

    scores = []
    for player in players:
        picked = {normalize_key(c) for c in player.countries}
        score = sum(r.value for r in records if r.country_key in picked)
        scores.append(PlayerScore(
            id=player.id,
            name=player.name,
            countries=tuple(player.countries),
            score=score,
            percentage=_percent(score, total_world),
        ))

    leaderboard = sorted(scores, key=lambda s: s.score, reverse=True)
    ranked = sorted(records, key=lambda r: r.value, reverse=True)[:top_limit]
    top_countries = tuple(
        TopCountry(country=r.country, value=r.value, percent=_percent(r.value, total_world))
        for r in ranked
    )
    return GameResult(
        total_world=total_world,
        scores=tuple(scores),
        leaderboard=tuple(leaderboard),
        top_countries=top_countries,
    )
