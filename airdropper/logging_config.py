import logging
import logging.config
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("AIRDROP_LOG_FILE", "airdrop.log")


def logging_config(level: str = LOG_LEVEL, log_file: str = LOG_FILE) -> dict:
    handlers = ["console", "file"] if log_file else ["console"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)-6s %(name)8s:%(lineno)d %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "airdropper": {
                "level": level,
                "handlers": handlers,
                "propagate": False,
            },
            # Keep library chatter out of the progress log
            "web3": {
                "level": "WARNING",
                "handlers": handlers,
                "propagate": False,
            },
            "urllib3": {
                "level": "WARNING",
                "handlers": handlers,
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": handlers,
        },
    }
    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": log_file,
            "mode": "a",
        }
    return config


def setup_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE):
    """ Apply the logging configuration. """
    logging.config.dictConfig(logging_config(level, log_file))
    os.environ.setdefault("PYTHONUNBUFFERED", "1")
