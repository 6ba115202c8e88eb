from flask import Blueprint, Response

from .api_response import create_response
from .extensions import get_package_manager

root_bp = Blueprint('root', __name__)
api_root_bp = Blueprint('api_root', __name__)

JDCHECK_SCRIPT = "jdownloader=true;\nvar version='42707';"


@root_bp.route('/jdcheck.js')
def jdcheck():
    return Response(JDCHECK_SCRIPT, mimetype='application/javascript')


@api_root_bp.route('/health')
def health():
    package_manager = get_package_manager()
    return create_response({
        'status': 'ok',
        'cache': package_manager.cache.name,
        'debridService': package_manager.debrid_service,
    })
