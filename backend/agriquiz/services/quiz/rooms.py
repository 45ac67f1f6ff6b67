"""Room state machine.

Forming -> Configured -> Active -> Ended, with Ended -> Configured when the
room is re-configured for a new game. Every transition runs under the room's
lock, validates before mutating and emits its notifications while still
holding the lock, so each room sees its broadcasts in processing order.

Notifications go through a gateway bound to the requesting connection:

    gateway.sid                               requester identity
    gateway.send(event, payload)              requester only
    gateway.broadcast(room_id, event, payload)
    gateway.subscribe(room_id) / gateway.unsubscribe(room_id)
    gateway.close(room_id)
"""
from typing import List, Optional
import logging

from agriquiz.dataset import Dataset
from agriquiz.errors import (
    DataUnavailable,
    InvalidRequest,
    InvalidSelection,
    InvalidState,
    RoomNotFound,
)
from agriquiz.models import Player, Room, RoomStatus, Settings
from .registry import RoomRegistry
from .scoring import TOP_COUNTRIES_LIMIT, score_game
from .validation import clean_name, normalize_room_code, parse_settings

logger = logging.getLogger(__name__)


class RoomService:
    def __init__(self, registry: RoomRegistry, dataset: Optional[Dataset] = None,
                 default_year: int = 2023, default_num_countries: int = 3,
                 max_name_length: int = 24, top_limit: int = TOP_COUNTRIES_LIMIT):
        self.registry = registry
        self.dataset = dataset
        self.default_year = default_year
        self.default_num_countries = default_num_countries
        self.max_name_length = max_name_length
        self.top_limit = top_limit

    def _require_dataset(self) -> Dataset:
        if self.dataset is None:
            raise DataUnavailable('Dataset not ready, please wait...')
        return self.dataset

    def _apply_settings(self, room: Room, settings: Settings) -> None:
        """Picks are validated when made, so they survive re-configuration
        before start; only leaving Ended (a new game) clears them."""
        countries = self._require_dataset().countries(settings.product, settings.year)
        new_game = room.status == RoomStatus.ENDED
        room.settings = settings
        room.available_countries = countries
        room.status = RoomStatus.CONFIGURED
        if new_game:
            for p in room.players:
                p.reset()

    def list_products(self) -> List[str]:
        return list(self._require_dataset().products)

    def create_room(self, gateway, product=None, year=None, num_countries=None) -> Room:
        self._require_dataset()
        settings = None
        if product:
            settings = parse_settings(
                product,
                year if year is not None else self.default_year,
                num_countries if num_countries is not None else self.default_num_countries,
            )
        room = self.registry.create_room(gateway.sid)
        with self.registry.locked(room.id) as room:
            if settings is not None:
                self._apply_settings(room, settings)
            gateway.subscribe(room.id)
            payload = {'roomId': room.id}
            if room.settings:
                payload['settings'] = room.settings.to_dict()
                payload['availableCountries'] = list(room.available_countries)
            gateway.send('roomCreated', payload)
        return room

    def set_settings(self, gateway, room_id, product, year, num_countries) -> Room:
        settings = parse_settings(product, year, num_countries)
        with self.registry.locked(room_id) as room:
            if room.status == RoomStatus.ACTIVE:
                raise InvalidState('Settings cannot change while a game is running')
            self._apply_settings(room, settings)
            room.touch()
            logger.info(
                f"Room {room.id} configured: {settings.product}/{settings.year} "
                f"picks={settings.num_countries} countries={len(room.available_countries)}"
            )
            gateway.broadcast(room.id, 'settingsUpdated', room.settings.to_dict())
            # Players only see the countries at start
            if gateway.sid == room.manager_id:
                gateway.send('countriesList', list(room.available_countries))
            return room

    def join_room(self, gateway, room_id, name) -> Player:
        with self.registry.locked(room_id) as room:
            name = clean_name(name, self.max_name_length)
            player = room.get_player(gateway.sid)
            if player is None:
                player = Player(id=gateway.sid, name=name)
                room.players.append(player)
            else:
                player.name = name
            room.touch()
            gateway.subscribe(room.id)
            self.registry.add_member(gateway.sid, room.id)
            logger.info(f"Player {gateway.sid} joined room {room.id} as {name!r}")
            gateway.broadcast(room.id, 'playerList', room.players_payload())
            if room.settings:
                gateway.send('settingsUpdated', room.settings.to_dict())
                if room.started:
                    gateway.send('countriesList', list(room.available_countries))
            return player

    def start_game(self, gateway, room_id) -> Room:
        with self.registry.locked(room_id) as room:
            if room.status != RoomStatus.CONFIGURED:
                logger.debug(f"Ignoring start for room {room.id} in state {room.status}")
                return room
            room.status = RoomStatus.ACTIVE
            room.touch()
            logger.info(f"Game started in room {room.id}")
            gateway.broadcast(room.id, 'gameStarted', room.settings.to_dict())
            gateway.broadcast(room.id, 'countriesList', list(room.available_countries))
            return room

    def _check_selection(self, room: Room, player: Optional[Player], country) -> str:
        if room.settings is None or player is None:
            raise InvalidSelection('No game or no such player')
        if room.status not in (RoomStatus.CONFIGURED, RoomStatus.ACTIVE):
            raise InvalidSelection('Selections are closed')
        match = room.match_country(country)
        if match is None:
            raise InvalidSelection(f"Unknown country {country!r}")
        if player.has_country(match):
            raise InvalidSelection(f"{match} already selected")
        if len(player.countries) >= room.settings.num_countries:
            raise InvalidSelection('Selection limit reached')
        return match

    def select_country(self, gateway, room_id, country) -> bool:
        """Record a pick. Returns False, without notifying anyone, when the pick is rejected."""
        with self.registry.locked(room_id) as room:
            player = room.get_player(gateway.sid)
            try:
                match = self._check_selection(room, player, country)
            except InvalidSelection as exc:
                logger.debug(f"Ignoring pick in room {room.id} from {gateway.sid}: {exc.message}")
                return False
            player.countries.append(match)
            room.touch()
            gateway.broadcast(room.id, 'playerList', room.players_payload())
            return True

    def end_game(self, gateway, room_id):
        with self.registry.locked(room_id) as room:
            if room.settings is None:
                logger.debug(f"Ignoring end for unconfigured room {room.id}")
                return None
            records = self._require_dataset().slice(room.settings.product, room.settings.year)
            if not records:
                raise DataUnavailable(
                    f"No data found for {room.settings.product}/{room.settings.year}"
                )
            result = score_game(records, room.players, top_limit=self.top_limit)
            for player, line in zip(room.players, result.scores):
                player.score = line.score
                player.percentage = line.percentage
            room.status = RoomStatus.ENDED
            room.touch()
            logger.info(f"Game ended in room {room.id}: total={result.total_world} players={len(room.players)}")
            payload = result.to_dict()
            payload['settings'] = room.settings.to_dict()
            gateway.broadcast(room.id, 'gameEnded', payload)
            return result

    def leave_room(self, gateway, room_id) -> bool:
        with self.registry.locked(room_id) as room:
            removed = room.remove_player(gateway.sid)
            self.registry.discard_member(gateway.sid, room.id)
            gateway.unsubscribe(room.id)
            if removed:
                room.touch()
                logger.info(f"Player {gateway.sid} left room {room.id}")
                gateway.broadcast(room.id, 'playerList', room.players_payload())
            return removed

    def disconnect(self, gateway) -> List[str]:
        """Drop the connection from every room it joined; returns the affected room ids."""
        affected = []
        for code in sorted(self.registry.pop_memberships(gateway.sid)):
            try:
                with self.registry.locked(code) as room:
                    if room.remove_player(gateway.sid):
                        room.touch()
                        affected.append(room.id)
                        gateway.broadcast(room.id, 'playerList', room.players_payload())
            except RoomNotFound:
                continue
        return affected

    def close_room(self, gateway, room_id) -> Room:
        code = normalize_room_code(room_id)
        with self.registry.locked(code) as room:
            if room.manager_id != gateway.sid:
                raise InvalidRequest('Only the room manager can close the room')
        room = self.registry.remove_room(code)
        if room is not None:
            gateway.broadcast(room.id, 'roomClosed', {'roomId': room.id})
            gateway.close(room.id)
        return room

    def expire_idle(self, notifier, ttl: float, now: Optional[float] = None) -> List[str]:
        """Tear down idle rooms; ``notifier`` only needs broadcast() and close()."""
        expired = self.registry.expire_idle(ttl, now=now)
        for code in expired:
            notifier.broadcast(code, 'roomClosed', {'roomId': code})
            notifier.close(code)
        return expired
