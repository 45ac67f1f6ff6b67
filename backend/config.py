import os

BACKEND_ROOT = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Reference dataset (FAOSTAT export). Empty separator means auto-detect.
    DATASET_PATH = os.environ.get('DATASET_PATH') or os.path.join(BACKEND_ROOT, 'FAOSTAT_data.csv')
    DATASET_SEPARATOR = os.environ.get('DATASET_SEPARATOR', '')
    DATASET_ENCODING = os.environ.get('DATASET_ENCODING', 'utf-8-sig')
    # Defaults applied when createRoom carries settings inline
    DEFAULT_YEAR = int(os.environ.get('DEFAULT_YEAR', '2023'))
    DEFAULT_NUM_COUNTRIES = int(os.environ.get('DEFAULT_NUM_COUNTRIES', '3'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '24'))
    # Idle room teardown (seconds). 0 disables.
    ROOM_IDLE_TTL_SEC = int(os.environ.get('ROOM_IDLE_TTL_SEC', '3600'))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('ROOM_SWEEP_INTERVAL_SEC', '60'))
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000',
        ).split(',')
        if origin.strip()
    ]
