"""Quiz domain services: room registry, state machine, scoring and sweeping.

Transport concerns stay in ``agriquiz.socketio_events``; everything here
talks to connections through a gateway object.
"""
