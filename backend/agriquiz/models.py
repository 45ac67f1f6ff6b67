from dataclasses import dataclass, field
from typing import List, Optional
import time


def normalize_key(text) -> str:
    """Lookup key for products and countries: trimmed and lower-cased."""
    return str(text or '').strip().lower()


@dataclass(frozen=True)
class DatasetRecord:
    product: str
    country: str
    year: int
    value: float

    @property
    def product_key(self) -> str:
        return normalize_key(self.product)

    @property
    def country_key(self) -> str:
        return normalize_key(self.country)


@dataclass(frozen=True)
class Settings:
    product: str
    year: int
    num_countries: int

    def to_dict(self):
        return {
            'product': self.product,
            'year': self.year,
            'numCountries': self.num_countries,
        }


@dataclass
class Player:
    id: str
    name: str
    countries: List[str] = field(default_factory=list)
    score: float = 0.0
    percentage: float = 0.0

    def has_country(self, country: str) -> bool:
        key = normalize_key(country)
        return any(normalize_key(c) == key for c in self.countries)

    def reset(self) -> None:
        self.countries = []
        self.score = 0.0
        self.percentage = 0.0

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'countries': list(self.countries),
            'score': self.score,
            'percentage': self.percentage,
        }


class RoomStatus:
    FORMING = 'forming'        # no settings yet
    CONFIGURED = 'configured'  # settings present, countries computed
    ACTIVE = 'active'          # game started
    ENDED = 'ended'            # scored, selections frozen


@dataclass
class Room:
    id: str
    manager_id: str
    players: List[Player] = field(default_factory=list)
    settings: Optional[Settings] = None
    available_countries: List[str] = field(default_factory=list)
    status: str = RoomStatus.FORMING
    touched_at: float = field(default_factory=time.monotonic)

    @property
    def started(self) -> bool:
        return self.status in (RoomStatus.ACTIVE, RoomStatus.ENDED)

    def touch(self) -> None:
        self.touched_at = time.monotonic()

    def get_player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def remove_player(self, player_id: str) -> bool:
        before = len(self.players)
        self.players = [p for p in self.players if p.id != player_id]
        return len(self.players) != before

    def match_country(self, country) -> Optional[str]:
        """Return the display name of an available country, matched case-insensitively."""
        key = normalize_key(country)
        if not key:
            return None
        for c in self.available_countries:
            if normalize_key(c) == key:
                return c
        return None

    def players_payload(self):
        return [p.to_dict() for p in self.players]

    def to_dict(self, include_countries: bool = True):
        return {
            'roomId': self.id,
            'managerId': self.manager_id,
            'status': self.status,
            'started': self.started,
            'settings': self.settings.to_dict() if self.settings else None,
            'players': self.players_payload(),
            'availableCountries': list(self.available_countries) if include_countries else None,
        }


@dataclass(frozen=True)
class PlayerScore:
    id: str
    name: str
    countries: tuple
    score: float
    percentage: float

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'countries': list(self.countries),
            'score': self.score,
            'percentage': self.percentage,
        }


@dataclass(frozen=True)
class TopCountry:
    country: str
    value: float
    percent: float

    def to_dict(self):
        return {'country': self.country, 'value': self.value, 'percent': self.percent}


@dataclass(frozen=True)
class GameResult:
    total_world: float
    scores: tuple          # PlayerScore in roster order
    leaderboard: tuple     # PlayerScore sorted by score, stable
    top_countries: tuple   # TopCountry sorted by value, stable

    def to_dict(self):
        return {
            'leaderboard': [s.to_dict() for s in self.leaderboard],
            'topCountries': [t.to_dict() for t in self.top_countries],
            'totalWorld': self.total_world,
        }
