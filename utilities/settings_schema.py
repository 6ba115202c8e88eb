# settings_schema.py

SETTINGS_SCHEMA = {
    "Server": {
        "tab": "Required Settings",
        "host": {
            "type": "string",
            "description": "Interface the Click'n'Load listener binds to",
            "default": "0.0.0.0",
            "env": "CND_HOST"
        },
        "port": {
            "type": "integer",
            "description": "Port the Click'n'Load listener binds to (extensions expect 9666)",
            "default": 9666,
            "env": "CND_PORT"
        }
    },
    "Destination": {
        "tab": "Required Settings",
        "url": {
            "type": "string",
            "description": "Base URL of the downstream CNL-compatible download manager (e.g. PyLoad)",
            "default": "http://localhost:8000",
            "env": "CND_DESTINATION_URL"
        },
        "timeout": {
            "type": "integer",
            "description": "Timeout in seconds for submissions to the download manager",
            "default": 30,
            "env": "CND_DESTINATION_TIMEOUT"
        }
    },
    "Debrid Provider": {
        "tab": "Required Settings",
        "provider": {
            "type": "string",
            "description": "Debrid service used to unrestrict links",
            "default": "realdebrid",
            "choices": ["realdebrid"],
            "env": "CND_DEBRIDSERVICE"
        },
        "api_key": {
            "type": "string",
            "description": "API token of the debrid service",
            "default": "",
            "sensitive": True,
            "env": "CND_REALDEBRID_APITOKEN"
        },
        "timeout": {
            "type": "integer",
            "description": "Timeout in seconds for a single unrestrict call",
            "default": 30,
            "env": "CND_DEBRID_TIMEOUT"
        },
        "error_on_api_error": {
            "type": "boolean",
            "description": "Abort the whole package on the first failing link instead of keeping the original link",
            "default": False,
            "env": "CND_ERROR_ON_API_ERROR"
        }
    },
    "Redis": {
        "tab": "Additional Settings",
        "enabled": {
            "type": "boolean",
            "description": "Store processed packages in Redis (falls back to memory when unreachable)",
            "default": True,
            "env": "CND_REDIS_ENABLED"
        },
        "url": {
            "type": "string",
            "description": "Redis connection URL",
            "default": "redis://localhost:6379",
            "env": "CND_REDIS_URL"
        },
        "username": {
            "type": "string",
            "description": "Redis username",
            "default": "",
            "env": "CND_REDIS_USERNAME"
        },
        "password": {
            "type": "string",
            "description": "Redis password",
            "default": "",
            "sensitive": True,
            "env": "CND_REDIS_PASSWORD"
        },
        "ttl": {
            "type": "integer",
            "description": "Default lifetime of cached packages in seconds",
            "default": 86400,
            "env": "CND_REDIS_TTL"
        },
        "timeout": {
            "type": "float",
            "description": "Timeout in seconds for a single Redis round trip",
            "default": 3,
            "env": "CND_REDIS_TIMEOUT"
        }
    },
    "Debug": {
        "tab": "Debug Settings",
        "logging_level": {
            "type": "string",
            "description": "Console logging level",
            "default": "INFO",
            "choices": ["DEBUG", "INFO", "WARNING", "ERROR"],
            "env": "CND_LOG_LEVEL"
        }
    }
}
