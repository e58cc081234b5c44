import os
from logging import Logger, config, getLevelName, getLogger
from typing import Any

LOGGER_NAME = "weather_gateway"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_log_config(level: str) -> dict[str, Any]:
    """dictConfig for the gateway and uvicorn, sharing uvicorn's colored formatters.

    ``httpx`` is held at WARNING so every provider call does not add an INFO
    line of its own next to the chain's stage logs.
    """
    level_name = getLevelName(level.upper())
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": '%(levelprefix)s %(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s',
                "datefmt": DATE_FORMAT,
                "use_colors": True,
            },
            "gateway": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(asctime)s - %(name)s - %(message)s",
                "datefmt": DATE_FORMAT,
                "use_colors": True,
            },
        },
        "handlers": {
            "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": "ext://sys.stdout"},
            "gateway": {"class": "logging.StreamHandler", "formatter": "gateway", "stream": "ext://sys.stderr"},
        },
        "loggers": {
            LOGGER_NAME: {"handlers": ["gateway"], "level": level_name, "propagate": False},
            "httpx": {"handlers": ["gateway"], "level": "WARNING", "propagate": False},
            "uvicorn": {"handlers": ["gateway"], "level": level_name, "propagate": True},
            "uvicorn.access": {"handlers": ["access"], "level": level_name, "propagate": False},
            "uvicorn.error": {"level": level_name, "propagate": False},
        },
    }


# LOG_LEVEL: DEBUG, INFO, WARNING, ERROR
config.dictConfig(build_log_config(os.getenv("LOG_LEVEL", "INFO")))

logger = getLogger(LOGGER_NAME)


def get_logger(component: str) -> Logger:
    """Child of the gateway logger for one component, e.g. "cache" or "location"."""
    return logger.getChild(component)
