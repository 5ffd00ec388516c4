import json
import logging

ROOT_LOGGER = "wikifeat"


def setup_logging(level: str = "INFO"):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_event(logger: logging.Logger, msg: str, level: int = logging.INFO, **fields):
    # one JSON object per line so events stay greppable
    logger.log(level, json.dumps({"msg": msg, **fields}, default=str))
