from flask import Flask, current_app, request
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix
import logging
import time

from .api_response import create_error_response


def get_package_manager():
    return current_app.extensions['package_manager']


def create_app(package_manager):
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)
    app.extensions['package_manager'] = package_manager

    # Browser extensions post Click'n'Load requests from arbitrary origins
    CORS(app, resources={r"/*": {
        "origins": "*",
        "methods": ["GET", "HEAD", "POST", "OPTIONS", "DELETE"],
        "allow_headers": ["Content-Type", "Accept", "Origin", "X-Requested-With"],
        "max_age": 3600
    }})

    @app.before_request
    def start_timer():
        request.environ['clickndebrid.start_time'] = time.monotonic()

    @app.after_request
    def log_request(response):
        start_time = request.environ.get('clickndebrid.start_time')
        duration_ms = int((time.monotonic() - start_time) * 1000) if start_time else 0
        message = f"{request.method} {request.path} {response.status_code} {duration_ms}ms"
        if response.status_code >= 500:
            logging.error(message)
        elif response.status_code >= 400:
            logging.warning(message)
        else:
            logging.info(message)
        response.headers['X-Content-Type-Options'] = 'nosniff'
        return response

    @app.errorhandler(404)
    def not_found(error):
        return create_error_response("Not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return create_error_response("Method not allowed", 405)

    from . import register_blueprints
    register_blueprints(app)

    return app
