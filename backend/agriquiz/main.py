from flask import Blueprint, jsonify

from agriquiz import room_service

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the commodity quiz server!'})


@main.route('/health')
def health():
    service = room_service()
    return jsonify({
        'status': 'healthy',
        'datasetLoaded': service.dataset is not None,
        'rooms': len(service.registry),
    })
