from flask import Blueprint, jsonify

from agriquiz import room_service
from agriquiz.errors import DataUnavailable

rooms = Blueprint('rooms', __name__)


@rooms.route('/products', methods=['GET'])
def list_products():
    try:
        products = room_service().list_products()
    except DataUnavailable as exc:
        return jsonify({'error': exc.message}), 503
    return jsonify(products)


@rooms.route('/products/<path:product>/years', methods=['GET'])
def list_years(product):
    dataset = room_service().dataset
    if dataset is None:
        return jsonify({'error': 'Dataset not ready, please wait...'}), 503
    return jsonify(dataset.years(product))


@rooms.route('/rooms/<string:room_id>', methods=['GET'])
def get_room_state(room_id):
    """
    Returns a snapshot of a room. The country list stays hidden until the game starts.
    """
    room = room_service().registry.get_room(room_id)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(room.to_dict(include_countries=room.started))
