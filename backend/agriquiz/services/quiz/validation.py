import random
from typing import Optional

from agriquiz.errors import InvalidSettings
from agriquiz.models import Settings

# No 0/O, 1/I: codes are read aloud and typed by hand. 32 symbols ** 6 = 2**30.
ROOM_CODE_ALPHABET = '23456789ABCDEFGHJKLMNPQRSTUVWXYZ'
ROOM_CODE_LENGTH = 6


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def normalize_room_code(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    cleaned = ''.join(ch for ch in value if ch.isalnum())
    return cleaned.upper() or None


def room_id_from(data) -> Optional[str]:
    """Extract a room code from an event payload (dict or bare string)."""
    if isinstance(data, dict):
        return normalize_room_code(data.get('roomId'))
    return normalize_room_code(data)


DEFAULT_PLAYER_NAME = 'Player'


def clean_name(value, max_length: int) -> str:
    """Trim and cut a display name; blank names fall back to DEFAULT_PLAYER_NAME."""
    name = str(value or '').strip()[:max_length]
    return name or DEFAULT_PLAYER_NAME


def _positive_int(value, label: str) -> int:
    if isinstance(value, bool):
        raise InvalidSettings(f"{label} must be an integer")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidSettings(f"{label} must be an integer")
    if number < 1:
        raise InvalidSettings(f"{label} must be at least 1")
    return number


def parse_settings(product, year, num_countries) -> Settings:
    product = str(product or '').strip()
    if not product:
        raise InvalidSettings('A product is required')
    return Settings(
        product=product,
        year=_positive_int(year, 'year'),
        num_countries=_positive_int(num_countries, 'numCountries'),
    )
