"""reqfile environment - http-client.env.json selection files and .env loading."""

import json
import logging
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

PUBLIC_ENV_FILE = "http-client.env.json"
PRIVATE_ENV_FILE = "http-client.private.env.json"
DOTENV_FILE = ".env"
SHARED_ENVIRONMENT = "$shared"


def _read_section(path: Path, name: str) -> dict[str, str]:
    """Flat string map stored under `name` in a JSON environment file.

    Every failure mode contributes nothing: missing file, unreadable file,
    malformed JSON, missing key, or a value that is not an object.
    """
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("ignoring environment file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring environment file %s: top level is not an object", path)
        return {}
    section = data.get(name)
    if section is None:
        logger.debug("environment %r not defined in %s", name, path)
        return {}
    if not isinstance(section, dict):
        logger.warning("environment %r in %s is not an object", name, path)
        return {}

    values: dict[str, str] = {}
    for key, value in section.items():
        if isinstance(value, dict | list):
            logger.warning("skipping nested value %r in environment %r of %s", key, name, path)
            continue
        if value is None:
            values[key] = ""
        elif isinstance(value, bool):
            values[key] = "true" if value else "false"
        else:
            values[key] = str(value)
    return values


def load_named_environment(directory: str | Path, name: str) -> dict[str, str]:
    """Variables of one environment, private file overriding the public one."""
    directory = Path(directory)
    merged = _read_section(directory / PUBLIC_ENV_FILE, name)
    merged.update(_read_section(directory / PRIVATE_ENV_FILE, name))
    return merged


def load_environment(directory: str | Path, name: str | None) -> tuple[dict[str, str], dict[str, str]]:
    """Load (environment_variables, global_variables) for a request file directory.

    global_variables come from the `$shared` section and are always loaded;
    environment_variables are empty when no environment is selected.
    """
    shared = load_named_environment(directory, SHARED_ENVIRONMENT)
    if not name:
        return {}, shared
    selected = load_named_environment(directory, name)
    if not selected:
        logger.info("environment %r contributed no variables", name)
    return selected, shared


def load_dotenv(directory: str | Path) -> dict[str, str]:
    """KEY=value pairs from the .env file next to the request file."""
    path = Path(directory) / DOTENV_FILE
    if not path.is_file():
        return {}
    try:
        values = dotenv_values(str(path))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("ignoring dotenv file %s: %s", path, e)
        return {}
    return {k: v for k, v in values.items() if v is not None}
