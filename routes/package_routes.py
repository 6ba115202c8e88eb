from flask import Blueprint, Response, request
import logging

from cnl.exceptions import SubmissionError
from debrid.base import DebridProviderError
from debrid.batch_processor import NoLinksToProcessError
from package_manager import EmptyPackageError, PackageNotFoundError, PaginationError
from .api_response import create_response, create_error_response
from .extensions import get_package_manager

package_bp = Blueprint('packages', __name__)


@package_bp.errorhandler(PaginationError)
def handle_pagination_error(error):
    return create_error_response(error, 400)


@package_bp.errorhandler(PackageNotFoundError)
def handle_not_found(error):
    return create_error_response(error, 404)


@package_bp.errorhandler(EmptyPackageError)
@package_bp.errorhandler(NoLinksToProcessError)
def handle_empty_package(error):
    return create_error_response(error, 503)


@package_bp.errorhandler(SubmissionError)
@package_bp.errorhandler(DebridProviderError)
def handle_upstream_error(error):
    return create_error_response(error, 502)


@package_bp.errorhandler(Exception)
def handle_unexpected_error(error):
    logging.error(f"API error: {str(error)}", exc_info=True)
    return create_error_response(error, 500)


@package_bp.route('', methods=['GET'])
def list_packages():
    page = request.args.get('page', 1)
    page_size = request.args.get('pageSize', 10)
    return create_response(get_package_manager().list_packages(page, page_size))


@package_bp.route('/<package_id>', methods=['GET'])
def get_package(package_id):
    return create_response(get_package_manager().get_package(package_id))


@package_bp.route('/<package_id>', methods=['DELETE'])
def delete_package(package_id):
    get_package_manager().delete_package(package_id)
    return create_response({'message': f"Package {package_id} deleted successfully"})


@package_bp.route('/<package_id>/filelist', methods=['GET'])
def get_file_list(package_id):
    content, filename = get_package_manager().get_file_list(package_id)
    return Response(
        content,
        mimetype='text/plain',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )


@package_bp.route('/<package_id>/resubmit', methods=['POST'])
def resubmit_package(package_id):
    crypted = get_package_manager().resubmit_package(package_id)
    return create_response({
        'message': "Package resubmitted successfully",
        'response': crypted,
    })


@package_bp.route('/<package_id>/redebrid', methods=['POST'])
def reprocess_package(package_id):
    result = get_package_manager().reprocess_package(package_id)
    return create_response({
        'message': "Package re-processed successfully",
        'package': result['package'],
        'version': result['version'],
    })
