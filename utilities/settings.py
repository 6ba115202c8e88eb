import os
import logging
from urllib.parse import urlparse
import json
import copy
from utilities.settings_schema import SETTINGS_SCHEMA

SUPPORTED_DEBRID_PROVIDERS = ('realdebrid',)

# --- Start Dynamic Path Functions ---
def get_config_dir():
    """Dynamically gets the configuration directory from environment variable."""
    return os.environ.get('USER_CONFIG', '/user/config')

def get_config_file_path():
    """Dynamically gets the full path to the config.json file."""
    return os.path.join(get_config_dir(), 'config.json')
# --- End Dynamic Path Functions ---

def load_config():
    """Read config.json (or its backup) from the config directory. Returns {} when absent."""
    config_file_path = get_config_file_path()

    if not os.path.exists(config_file_path):
        logging.debug(f"load_config: Config file not found at {config_file_path}. Using defaults and environment.")
        return {}

    try:
        with open(config_file_path, 'r') as config_file:
            config = json.load(config_file)
        if not isinstance(config, dict):
            logging.error(f"Config file {config_file_path} does not contain a JSON object. Ignoring it.")
            return {}
        return config
    except json.JSONDecodeError as e:
        logging.error(f"Error decoding JSON from {config_file_path}: {str(e)}. Checking backup.")
        backup_file = config_file_path + '.backup'
        if os.path.exists(backup_file):
            try:
                with open(backup_file, 'r') as backup:
                    config = json.load(backup)
                    logging.info(f"Successfully loaded config from backup: {backup_file}")
                    return config
            except (IOError, json.JSONDecodeError) as e_backup:
                logging.error(f"Failed to load backup {backup_file}: {str(e_backup)}")
        logging.warning("load_config: Backup failed or non-existent. Returning empty config.")
        return {}
    except IOError as e_read:
        logging.error(f"Error reading config file {config_file_path}: {str(e_read)}")
        return {}

def load_dotenv_file():
    """Export KEY=VALUE lines of a .env file (project root, then config dir) without overriding the environment."""
    root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    env_file = os.path.join(root_dir, '.env')

    if not os.path.exists(env_file):
        env_file = os.path.join(get_config_dir(), '.env')
        if not os.path.exists(env_file):
            logging.debug("No .env file found in root or config dir - using system environment variables")
            return None

    try:
        with open(env_file, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    try:
                        key, value = line.split('=', 1)
                        os.environ.setdefault(key.strip(), value.strip().strip("'").strip('"'))
                    except ValueError:
                        continue
        logging.debug(f"Loaded environment variables from {env_file}")
        return env_file
    except IOError as e:
        logging.error(f"Failed to load environment file {env_file}: {str(e)}")
        return None

def load_env_config():
    """Collect the CND_* overrides declared in the schema."""
    env_config = {}
    for section, section_data in SETTINGS_SCHEMA.items():
        for key, value_schema in section_data.items():
            if key == 'tab' or not isinstance(value_schema, dict):
                continue
            env_name = value_schema.get('env')
            if env_name and env_name in os.environ:
                env_config.setdefault(section, {})[key] = os.environ[env_name]
    return env_config

def get_default_config():
    config = {}
    for section, section_data in SETTINGS_SCHEMA.items():
        config[section] = {}
        for key, value_schema in section_data.items():
            if key != 'tab' and isinstance(value_schema, dict) and 'default' in value_schema:
                config[section][key] = copy.deepcopy(value_schema['default'])
    return config

def merge_configs(base, overlay):
    """Recursively merge two config dictionaries."""
    for key, value in overlay.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            merge_configs(base[key], value)
        else:
            base[key] = value
    return base

# Helper function to safely parse boolean values
def parse_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1', 'on')
    return bool(value)

def validate_url(url):
    if not url or not isinstance(url, str):
        return ''
    if not url.startswith(('http://', 'https://', 'redis://', 'rediss://', 'unix://')):
        url = f'http://{url}'
    try:
        result = urlparse(url)
        if all([result.scheme, result.netloc]) or result.scheme == 'unix':
            return url.rstrip('/')
        logging.warning(f"Invalid URL structure (scheme or netloc missing): {url}")
        return ''
    except ValueError as e:
        logging.error(f"Error parsing URL {url}: {str(e)}")
        return ''

def coerce_value(section, key, value):
    """Convert a raw (possibly string) setting into the type declared in the schema."""
    value_schema = SETTINGS_SCHEMA.get(section, {}).get(key)
    if not isinstance(value_schema, dict):
        return value

    value_type = value_schema.get('type')
    default = value_schema.get('default')
    try:
        if value_type == 'boolean':
            return parse_bool(value)
        if value_type == 'integer':
            return int(value)
        if value_type == 'float':
            return float(value)
    except (TypeError, ValueError):
        logging.warning(f"Invalid value {value!r} for [{section}][{key}], using default {default!r}")
        return default

    if value_type == 'string':
        value = '' if value is None else str(value).strip()
        if key.lower().endswith('url'):
            return validate_url(value)
        if key == 'logging_level':
            value = value.upper()
            if value not in value_schema.get('choices', []):
                logging.warning(f"Unknown logging level {value!r}, using {default}")
                return default
        if section == 'Debrid Provider' and key == 'provider':
            value = value.lower().replace('-', '').replace(' ', '')
            if value not in SUPPORTED_DEBRID_PROVIDERS:
                logging.warning(f"Unknown debrid provider {value!r}, using {default}")
                return default
    return value

def get_all_settings():
    """Build a settings snapshot: schema defaults, then config.json, then CND_* environment variables."""
    load_dotenv_file()
    config = get_default_config()
    merge_configs(config, load_config())
    merge_configs(config, load_env_config())

    for section, section_data in config.items():
        if not isinstance(section_data, dict):
            continue
        for key, value in section_data.items():
            section_data[key] = coerce_value(section, key, value)
    return config

def get_setting(section, key=None, default=None, config=None):
    if config is None:
        config = get_all_settings()

    if key is None:
        return config.get(section, {})

    section_data = config.get(section, {})
    value = section_data.get(key, default)

    if isinstance(value, str) and value.lower() in ('true', 'false'):
        return parse_bool(value)
    return value

def validate_settings(config):
    """Log problems with critical settings. Never raises, the service keeps starting."""
    if not get_setting('Debrid Provider', 'api_key', '', config=config):
        logging.error("CND_REALDEBRID_APITOKEN not set, links will not be unrestricted")

    if not get_setting('Destination', 'url', '', config=config):
        logging.error("CND_DESTINATION_URL is empty or invalid, packages cannot be forwarded")

    if get_setting('Redis', 'enabled', False, config=config):
        logging.info(f"Redis is enabled, using URL: {get_setting('Redis', 'url', config=config)}")
    else:
        logging.info("Redis is disabled, packages are kept in memory only")
