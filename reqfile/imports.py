"""reqfile imports - parse_file() entry point and @import merging."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from reqfile.environment import load_dotenv, load_environment
from reqfile.errors import (
    CircularImportError,
    ImportNotFoundError,
    ParseError,
    RequestFileNotFoundError,
)
from reqfile.models import ParsedFile
from reqfile.parser import parse_text

logger = logging.getLogger(__name__)


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _parse_recursive(
    path: Path,
    stack: tuple[str, ...],
    variables: Mapping[str, Any],
    environment: Mapping[str, str],
    global_variables: Mapping[str, str],
    dotenv: Mapping[str, str],
    environ: Mapping[str, str] | None,
) -> ParsedFile:
    """Parse one file and merge everything it imports.

    `stack` holds the absolute paths currently being parsed, this file
    included. It is extended by value for each import so sibling imports
    never see each other's entries.
    """
    try:
        text = _read(path)
    except UnicodeDecodeError as e:
        raise ParseError(f"file is not valid UTF-8: {e}", file_path=str(path)) from e

    own = parse_text(
        text,
        file_path=str(path),
        variables=variables,
        environment=environment,
        global_variables=global_variables,
        dotenv=dotenv,
        environ=environ,
    )
    if not own.imported_files:
        return own

    merged = ParsedFile(str(path))
    merged.imported_files = list(own.imported_files)
    merged_variables: dict[str, str] = {}

    for import_path in own.imported_files:
        target = (path.parent / import_path).resolve()
        if str(target) in stack:
            raise CircularImportError(stack, str(target))
        if not target.is_file():
            raise ImportNotFoundError(str(path), str(target))

        logger.debug("importing %s from %s", target, path)
        imported = _parse_recursive(
            target,
            stack + (str(target),),
            variables,
            environment,
            global_variables,
            dotenv,
            environ,
        )
        merged.requests.extend(imported.requests)
        merged_variables.update(imported.file_variables)

    merged.requests.extend(own.requests)
    merged_variables.update(own.file_variables)
    merged.file_variables = merged_variables
    return merged


def parse_file(
    path: str | Path,
    variables: Mapping[str, Any] | None = None,
    environment: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ParsedFile:
    """Parse a request file, following @import directives.

    The selected environment (http-client.env.json and its private
    override) and the .env file are read from the request file's
    directory, both for resolving @variables while parsing and for
    later substitution.

    Raises RequestFileNotFoundError, VariableDefinitionError, HeaderError,
    CircularImportError or ImportNotFoundError.
    """
    path = Path(path)
    if not path.is_file():
        raise RequestFileNotFoundError(str(path))
    path = path.resolve()

    env_vars, global_vars = load_environment(path.parent, environment)
    dotenv = load_dotenv(path.parent)

    parsed = _parse_recursive(
        path,
        (str(path),),
        dict(variables or {}),
        env_vars,
        global_vars,
        dotenv,
        environ,
    )
    parsed.environment_variables = env_vars
    parsed.global_variables = global_vars
    parsed.dotenv_variables = dotenv
    logger.info("parsed %d request(s) from %s", len(parsed.requests), path)
    return parsed
