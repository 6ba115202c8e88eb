from flask import Blueprint, jsonify, request
import logging

from package_manager import ProcessingError
from .extensions import get_package_manager

flash_bp = Blueprint('flash', __name__)

PROCESSING_ERROR_MESSAGE = "Error processing encrypted request"


@flash_bp.route('/', methods=['GET'])
def index():
    # Click'n'Load presence probe
    return "JDownloader", 200, {'Content-Type': 'text/plain; charset=utf-8'}


@flash_bp.route('/addcrypted2', methods=['POST'])
def add_crypted2():
    try:
        response = get_package_manager().handle_submission(request.form)
    except ProcessingError:
        return PROCESSING_ERROR_MESSAGE, 500, {'Content-Type': 'text/plain; charset=utf-8'}
    except Exception as e:
        logging.error(f"Error processing encrypted request: {str(e)}", exc_info=True)
        return PROCESSING_ERROR_MESSAGE, 500, {'Content-Type': 'text/plain; charset=utf-8'}
    return jsonify(response)
