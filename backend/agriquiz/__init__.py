from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO
import os
import click
from config import Config

socketio = SocketIO(async_mode=None)

EXTENSION_KEY = 'agriquiz'


def room_service(app=None):
    """The RoomService owned by ``app`` (defaults to the current app)."""
    app = app or current_app
    return app.extensions[EXTENSION_KEY]


def _load_dataset(flask_app):
    from agriquiz.ingest import load_csv

    path = flask_app.config.get('DATASET_PATH')
    if not path or not os.path.exists(path):
        flask_app.logger.warning(f"[dataset] no dataset at {path}; rooms will report data unavailable")
        return None
    try:
        return load_csv(
            path,
            separator=flask_app.config.get('DATASET_SEPARATOR') or None,
            encoding=flask_app.config.get('DATASET_ENCODING', 'utf-8-sig'),
        )
    except (OSError, UnicodeDecodeError) as exc:
        flask_app.logger.error(f"[dataset] failed to load {path}: {exc}")
        return None


def create_app(config_class=Config, dataset=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    if dataset is None:
        dataset = _load_dataset(flask_app)

    from agriquiz.services.quiz.registry import RoomRegistry
    from agriquiz.services.quiz.rooms import RoomService
    flask_app.extensions[EXTENSION_KEY] = RoomService(
        RoomRegistry(),
        dataset,
        default_year=flask_app.config.get('DEFAULT_YEAR', 2023),
        default_num_countries=flask_app.config.get('DEFAULT_NUM_COUNTRIES', 3),
        max_name_length=flask_app.config.get('MAX_NAME_LENGTH', 24),
    )

    from agriquiz.main import main
    flask_app.register_blueprint(main)

    from agriquiz.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    # Register Socket.IO event handlers on the shared socketio instance
    from agriquiz.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('dataset-info')
    def dataset_info_command():
        """Prints record and product counts of the loaded dataset."""
        data = room_service(flask_app).dataset
        if data is None:
            raise click.ClickException(f"No dataset loaded from {flask_app.config.get('DATASET_PATH')}")
        click.echo(f"records: {len(data)}")
        click.echo(f"products: {len(data.products)}")

    @click.command('list-products')
    def list_products_command():
        """Prints every product in the loaded dataset."""
        data = room_service(flask_app).dataset
        if data is None:
            raise click.ClickException(f"No dataset loaded from {flask_app.config.get('DATASET_PATH')}")
        for product in data.products:
            click.echo(product)

    flask_app.cli.add_command(dataset_info_command)
    flask_app.cli.add_command(list_products_command)

    from agriquiz.services.quiz.sweeper import start_room_sweeper
    start_room_sweeper(flask_app)

    return flask_app
