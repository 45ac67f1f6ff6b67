import os
import sys
import pytest

# Ensure the backend root (containing the `agriquiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from agriquiz import create_app, room_service, socketio
from agriquiz.dataset import Dataset

NAMESPACE = '/ws'

ROWS = [
    {'Product': 'Wheat', 'Country': 'A', 'Year': 2023, 'Value': 100},
    {'Product': 'Wheat', 'Country': 'B', 'Year': 2023, 'Value': 300},
    {'Product': 'Wheat', 'Country': 'C', 'Year': 2022, 'Value': 50},
    {'Product': 'Rice', 'Country': 'China', 'Year': 2023, 'Value': 200},
    {'Product': 'Rice', 'Country': 'India', 'Year': 2023, 'Value': 150},
    {'Product': 'Rice', 'Country': 'Indonesia', 'Year': 2023, 'Value': 50},
    {'Product': 'Maize', 'Country': 'USA', 'Year': 2021, 'Value': 380},
]


class TestConfig:
    TESTING = True
    SECRET_KEY = 'test-secret'
    DATASET_PATH = os.path.join(CURRENT_DIR, 'does-not-exist.csv')
    DEFAULT_YEAR = 2023
    DEFAULT_NUM_COUNTRIES = 1
    MAX_NAME_LENGTH = 24
    ROOM_IDLE_TTL_SEC = 60
    ROOM_SWEEP_INTERVAL_SEC = 0
    CORS_ORIGINS = ['http://localhost:5173']


@pytest.fixture()
def dataset():
    return Dataset.from_rows(ROWS)


@pytest.fixture()
def flask_app(dataset):
    application = create_app(TestConfig, dataset=dataset)
    with application.app_context():
        yield application


@pytest.fixture()
def app_without_dataset():
    # DATASET_PATH points nowhere, so nothing gets loaded
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def service(flask_app):
    return room_service(flask_app)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        clients.append(test_client)
        return test_client

    yield _make
    for c in clients:
        try:
            if c.is_connected(NAMESPACE):
                c.disconnect(namespace=NAMESPACE)
        except RuntimeError:
            pass


class RecordingGateway:
    """Gateway fake: records what would have been sent or broadcast."""

    def __init__(self, sid):
        self.sid = sid
        self.sent = []
        self.broadcasts = []
        self.subscriptions = set()
        self.closed = []

    def send(self, event, payload):
        self.sent.append((event, payload))

    def broadcast(self, room_id, event, payload):
        self.broadcasts.append((room_id, event, payload))

    def subscribe(self, room_id):
        self.subscriptions.add(room_id)

    def unsubscribe(self, room_id):
        self.subscriptions.discard(room_id)

    def close(self, room_id):
        self.closed.append(room_id)

    def events(self):
        return [e for e, _ in self.sent] + [e for _, e, _ in self.broadcasts]


@pytest.fixture()
def gateway_factory():
    return RecordingGateway
