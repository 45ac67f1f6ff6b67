from typing import List, Optional

from agriquiz import room_service, socketio


def sweep_idle_rooms(app, now: Optional[float] = None, notifier=None) -> List[str]:
    """Remove rooms idle for longer than ROOM_IDLE_TTL_SEC and tell their members."""
    from agriquiz.socketio_events import RoomBroadcaster

    ttl = int(app.config.get('ROOM_IDLE_TTL_SEC', 0))
    expired = room_service(app).expire_idle(notifier or RoomBroadcaster(), ttl, now=now)
    if expired:
        app.logger.info(f"[sweep] removed idle rooms {expired}")
    return expired


def start_room_sweeper(app) -> None:
    """Start the periodic idle-room sweep.

    - No-ops in TESTING mode
    - No-ops when ROOM_IDLE_TTL_SEC or ROOM_SWEEP_INTERVAL_SEC is 0
    """
    if app.config.get('TESTING'):
        return
    interval = int(app.config.get('ROOM_SWEEP_INTERVAL_SEC', 0))
    ttl = int(app.config.get('ROOM_IDLE_TTL_SEC', 0))
    if interval <= 0 or ttl <= 0:
        return

    def _worker():
        while True:
            socketio.sleep(interval)
            with app.app_context():
                sweep_idle_rooms(app)

    app.logger.info(f"[sweep] every {interval}s, ttl={ttl}s")
    socketio.start_background_task(_worker)
