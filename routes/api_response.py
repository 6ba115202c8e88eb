from flask import jsonify


def create_response(data=None, success=True, meta=None):
    body = {'success': success, 'data': data}
    if meta is not None:
        body['meta'] = meta
    return jsonify(body)


def create_error_response(error, status_code=500, meta=None):
    """JSON error envelope. Accepts a message or an exception."""
    body = {'success': False, 'error': error if isinstance(error, str) else str(error)}
    if meta is not None:
        body['meta'] = meta
    return jsonify(body), status_code
