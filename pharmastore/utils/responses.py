"""Response envelope helpers."""
from flask import jsonify


def success(data=None, message='OK', status=200):
    return jsonify({'status': 'success', 'message': message, 'data': data}), status
