import json
import logging
import os

CONFIG_FILE = os.environ.get("SMARTHEALTH_CONFIG", "smarthealth_config.json")

DEFAULTS = {
    "database_url": "sqlite:///./health.db",
    "schema_file": "schema.sql",
    "max_shown": 5,
    "log_level": "INFO",
    "api_url": "http://127.0.0.1:8000",
}

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def get_config(path=None):
    """Defaults overlaid with whatever the JSON config file provides."""
    conf = dict(DEFAULTS)
    path = path or CONFIG_FILE
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except FileNotFoundError:
        return conf
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return conf
    if isinstance(loaded, dict):
        conf.update({k: v for k, v in loaded.items() if k in DEFAULTS})
        shown = conf["max_shown"]
        if isinstance(shown, bool) or not isinstance(shown, int) or shown < 1:
            logger.warning("Ignoring max_shown=%r in %s: expected a positive integer", shown, path)
            conf["max_shown"] = DEFAULTS["max_shown"]
    else:
        logger.warning("Ignoring config %s: expected a JSON object", path)
    return conf


def configure_logging(level="INFO"):
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int): level = logging.INFO
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
