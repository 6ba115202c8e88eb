import logging
import logging.handlers
import gzip
import os
import sys
import json
from datetime import datetime, timezone

NOISY_LOGGERS = ('urllib3', 'requests', 'charset_normalizer', 'werkzeug')

class DynamicConsoleHandler(logging.StreamHandler):
    def __init__(self, level='INFO'):
        super().__init__(sys.stdout)
        if sys.platform == 'win32':
            sys.stdout.reconfigure(encoding='utf-8', errors='replace')
        self.setLevel(self.get_level(level))

    @staticmethod
    def get_level(level):
        return getattr(logging, str(level).upper(), logging.INFO)

    def emit(self, record):
        try:
            msg = self.format(record)
            stream = self.stream
            stream.write(msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)

class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'name': record.name,
        }
        if isinstance(record.msg, dict):
            log_record.update(record.msg)
        else:
            log_record['message'] = record.getMessage()

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record['stack_info'] = self.formatStack(record.stack_info)

        return json.dumps(log_record, default=str)

def _gzip_namer(name):
    return name + ".gz"

def _gzip_rotator(source, dest):
    with open(source, 'rb') as f_in:
        with gzip.open(dest, 'wb') as f_out:
            f_out.writelines(f_in)
    os.remove(source)

def _not_noisy(record):
    return not record.name.startswith(NOISY_LOGGERS)

def setup_debug_logging(log_dir):
    class ImmediateRotatingFileHandler(logging.handlers.RotatingFileHandler):
        def emit(self, record):
            super().emit(record)
            self.flush()

    debug_handler = ImmediateRotatingFileHandler(
        os.path.join(log_dir, 'debug.log'),
        maxBytes=50*1024*1024,
        backupCount=5,
        encoding='utf-8',
        errors='replace'
    )
    debug_handler.setLevel(logging.DEBUG)
    debug_handler.addFilter(_not_noisy)

    formatter = logging.Formatter('%(asctime)s - %(filename)s:%(funcName)s:%(lineno)d - %(levelname)s - %(message)s')
    debug_handler.setFormatter(formatter)
    logging.getLogger().addHandler(debug_handler)

def setup_info_logging(level):
    console_handler = DynamicConsoleHandler(level)
    console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
    console_handler.addFilter(_not_noisy)
    logging.getLogger().addHandler(console_handler)

def setup_api_logging(log_dir):
    """Outbound HTTP calls (method, domain and path only) go to api_calls.log."""
    api_logger = logging.getLogger('api_calls')
    api_logger.setLevel(logging.INFO)
    api_logger.propagate = False
    api_logger.handlers.clear()

    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, 'api_calls.log'),
        maxBytes=10*1024*1024,
        backupCount=5,
        encoding='utf-8',
        errors='replace'
    )
    handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s',
                                           datefmt='%Y-%m-%d %H:%M:%S'))
    handler.rotator = _gzip_rotator
    handler.namer = _gzip_namer
    api_logger.addHandler(handler)

def setup_package_tracker_logging(log_dir):
    """Package lifecycle events, one JSON object per line."""
    tracker_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, 'package_tracker.log'),
        maxBytes=50*1024*1024,
        backupCount=5,
        encoding='utf-8'
    )
    tracker_handler.setLevel(logging.INFO)
    tracker_handler.setFormatter(JSONFormatter())

    tracker_logger = logging.getLogger('package_tracker')
    tracker_logger.setLevel(logging.INFO)
    tracker_logger.handlers.clear()
    tracker_logger.addHandler(tracker_handler)
    tracker_logger.propagate = False

def setup_logging(level='INFO'):
    """Initialize logging configuration"""
    log_dir = os.environ.get('USER_LOGS', '/user/logs')
    os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    setup_debug_logging(log_dir)
    setup_info_logging(level)
    setup_api_logging(log_dir)
    setup_package_tracker_logging(log_dir)

    # Requests are logged by the application's after_request hook
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
