from .flash_routes import flash_bp
from .package_routes import package_bp
from .root_routes import root_bp, api_root_bp


def register_blueprints(app):
    blueprints = [
        (flash_bp, '/flash'),
        (package_bp, '/api/v1/packages'),
        (api_root_bp, '/api/v1'),
        (root_bp, '/'),
    ]

    for blueprint, url_prefix in blueprints:
        app.register_blueprint(blueprint, url_prefix=url_prefix)


__all__ = ['register_blueprints', 'flash_bp', 'package_bp', 'root_bp', 'api_root_bp']
