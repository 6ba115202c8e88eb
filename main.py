import atexit
import logging
import signal
import sys

from api_tracker import APITracker
from cache import create_cache_store
from cnl import CnlCodec
from cnl.destination import DestinationClient
from debrid import BatchProcessor, LinkResolver, create_providers
from logging_config import setup_logging
from package_manager import PackageManager
from routes.extensions import create_app
from utilities.settings import get_all_settings, get_setting, validate_settings


def check_debrid_connectivity(resolver, debrid_service):
    provider = resolver.get_provider(debrid_service)
    ok, error = provider.check_connectivity()
    if ok:
        logging.info(f"Debrid service {provider.name} is reachable")
    else:
        logging.error(f"Debrid service {provider.name} check failed ({error['type']}): {error['message']}")
    return ok


def build_application(config):
    """Wire every component once. Returns (flask_app, cache_store, api_tracker)."""
    api = APITracker()
    debrid_service = get_setting('Debrid Provider', 'provider', 'realdebrid', config=config)

    providers = create_providers(
        get_setting('Debrid Provider', 'api_key', '', config=config),
        timeout=get_setting('Debrid Provider', 'timeout', 30, config=config),
        api=api,
    )
    resolver = LinkResolver(providers, default_provider=debrid_service)
    batch_processor = BatchProcessor(
        resolver,
        stop_on_error=get_setting('Debrid Provider', 'error_on_api_error', False, config=config),
    )

    redis_settings = get_setting('Redis', config=config)
    cache_store = create_cache_store(redis_settings)

    destination = DestinationClient(
        get_setting('Destination', 'url', '', config=config),
        timeout=get_setting('Destination', 'timeout', 30, config=config),
        api=api,
    )

    package_manager = PackageManager(
        codec=CnlCodec(),
        batch_processor=batch_processor,
        cache=cache_store,
        destination=destination,
        debrid_service=debrid_service,
        cache_ttl=redis_settings.get('ttl'),
    )
    return create_app(package_manager), cache_store, api


def main():
    config = get_all_settings()
    setup_logging(get_setting('Debug', 'logging_level', 'INFO', config=config))
    logging.info("Starting clickndebrid...")
    validate_settings(config)

    app, cache_store, api = build_application(config)
    check_debrid_connectivity(app.extensions['package_manager'].batch_processor.resolver,
                              app.extensions['package_manager'].debrid_service)

    def shutdown():
        logging.info("Shutting down, closing connections")
        cache_store.close()
        api.close()

    atexit.register(shutdown)

    def signal_handler(signum, frame):
        logging.info(f"Received signal {signum}, exiting")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    host = get_setting('Server', 'host', '0.0.0.0', config=config)
    port = get_setting('Server', 'port', 9666, config=config)
    logging.info(f"Click'n'Load listener on {host}:{port}, forwarding to {get_setting('Destination', 'url', config=config)}")
    app.run(host=host, port=port, threaded=True, use_reloader=False)


if __name__ == "__main__":
    main()
