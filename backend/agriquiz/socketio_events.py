from functools import wraps

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from agriquiz import room_service, socketio
from agriquiz.errors import InvalidRequest, QuizError
from agriquiz.services.quiz.validation import room_id_from

NAMESPACE = '/ws'


def channel(room_id: str) -> str:
    return f"room:{room_id}"


class RoomBroadcaster:
    """Room-scoped multicast. Usable outside a request (background tasks)."""

    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace

    def broadcast(self, room_id, event, payload):
        socketio.emit(event, payload, to=channel(room_id), namespace=self.namespace)

    def close(self, room_id):
        socketio.close_room(channel(room_id), namespace=self.namespace)


class SocketIOGateway(RoomBroadcaster):
    """Gateway bound to the connection that sent the current event."""

    def __init__(self, sid: str, namespace: str = NAMESPACE):
        super().__init__(namespace)
        self.sid = sid

    def send(self, event, payload):
        socketio.emit(event, payload, to=self.sid, namespace=self.namespace)

    def subscribe(self, room_id):
        join_room(channel(room_id), sid=self.sid, namespace=self.namespace)

    def unsubscribe(self, room_id):
        leave_room(channel(room_id), sid=self.sid, namespace=self.namespace)


def _gateway() -> SocketIOGateway:
    return SocketIOGateway(request.sid)  # type: ignore


def _payload(data) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest('Expected an object payload')
    return data


def _require_room_id(data) -> str:
    room_id = room_id_from(data)
    if not room_id:
        raise InvalidRequest('roomId is required')
    return room_id


def reports_errors(handler):
    """Turn QuizError into an errorMsg for the requester only."""
    @wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except QuizError as exc:
            current_app.logger.info(f"[error] sid={request.sid} {exc.code}: {exc.message}")  # type: ignore
            emit('errorMsg', exc.to_dict())
    return wrapper


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={request.sid}")  # type: ignore


def handle_disconnect(reason=None):
    gateway = _gateway()
    affected = room_service().disconnect(gateway)
    current_app.logger.info(f"[disconnect] sid={gateway.sid} rooms={affected}")


@reports_errors
def handle_get_products(data=None):
    emit('productsList', room_service().list_products())


@reports_errors
def handle_create_room(data=None):
    data = _payload(data)
    room = room_service().create_room(
        _gateway(),
        product=data.get('product'),
        year=data.get('year'),
        num_countries=data.get('numCountries'),
    )
    product = room.settings.product if room.settings else None
    current_app.logger.info(f"[room-create] room={room.id} product={product}")


@reports_errors
def handle_set_settings(data=None):
    data = _payload(data)
    room_service().set_settings(
        _gateway(),
        _require_room_id(data),
        data.get('product'),
        data.get('year'),
        data.get('numCountries'),
    )


@reports_errors
def handle_join_room(data=None):
    data = _payload(data)
    room_id = _require_room_id(data)
    player = room_service().join_room(_gateway(), room_id, data.get('name'))
    current_app.logger.info(f"[join] room={room_id} player={player.id} name={player.name!r}")


@reports_errors
def handle_start_game(data=None):
    room_service().start_game(_gateway(), _require_room_id(data))


@reports_errors
def handle_select_country(data=None):
    data = _payload(data)
    room_service().select_country(_gateway(), _require_room_id(data), data.get('country'))


@reports_errors
def handle_end_game(data=None):
    room_id = _require_room_id(data)
    result = room_service().end_game(_gateway(), room_id)
    if result is not None:
        current_app.logger.info(f"[end] room={room_id} total={result.total_world}")


@reports_errors
def handle_leave_room(data=None):
    room_service().leave_room(_gateway(), _require_room_id(data))


@reports_errors
def handle_close_room(data=None):
    room = room_service().close_room(_gateway(), _require_room_id(data))
    if room is not None:
        current_app.logger.info(f"[close] room={room.id}")


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('getProducts', handle_get_products, namespace=namespace)
    socketio.on_event('createRoom', handle_create_room, namespace=namespace)
    socketio.on_event('setSettings', handle_set_settings, namespace=namespace)
    socketio.on_event('joinRoom', handle_join_room, namespace=namespace)
    socketio.on_event('startGame', handle_start_game, namespace=namespace)
    socketio.on_event('selectCountry', handle_select_country, namespace=namespace)
    socketio.on_event('endGame', handle_end_game, namespace=namespace)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=namespace)
    socketio.on_event('closeRoom', handle_close_room, namespace=namespace)
