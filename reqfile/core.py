"""reqfile core - config loading and final request preparation."""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from reqfile.errors import ExternalFileError
from reqfile.models import canonical_header_name
from reqfile.multipart import has_file_parts, multipart_form_data
from reqfile.variables import ResolvedRequest, resolve

logger = logging.getLogger(__name__)

GLOBAL_DIR = Path.home() / ".reqfile"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".reqfile.yaml",
    ".reqfile.yml",
    "reqfile.yaml",
    "reqfile.yml",
]

DEFAULT_TIMEOUT = 30


# ── Config ──────────────────────────────────────────────────────────────


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (no fallthrough if missing)
      2. .reqfile.yaml (variants) in CWD
      3. ~/.reqfile/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config. Missing file gives an empty `defaults` section."""
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    logger.debug("loaded config from %s", path)
    return {
        "defaults": data.get("defaults") or {},
        "_config_dir": path.resolve().parent,
    }


def resolve_value(value: Any, env: dict[str, str] | None = None) -> Any:
    """Expand $VAR and ${VAR} references in a config string.

    Unknown names are left as written. Non-strings pass through.
    """
    if not isinstance(value, str):
        return value
    env = os.environ if env is None else env

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, m.group(0))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def config_variables(defaults: dict) -> dict[str, Any]:
    """Programmatic variables declared under `defaults.variables`."""
    variables = defaults.get("variables") or {}
    return {str(k): resolve_value(v) for k, v in variables.items()}


# ── Request preparation ─────────────────────────────────────────────────


def apply_base_url(url: str, base_url: str | None) -> str:
    """Prefix relative URLs with base_url. Absolute URLs are returned unchanged."""
    if not base_url or url.startswith(("http://", "https://")):
        return url
    return base_url.rstrip("/") + "/" + url.lstrip("/")


def read_external_body(resolved: ResolvedRequest) -> str | bytes:
    """Contents of a `< path` / `<@ path` body, relative to the request file.

    Static references are sent as raw bytes; `<@` references are decoded
    and have their placeholders resolved with the request's own scopes.
    """
    request = resolved.request
    path = Path(request.external_file_path)
    if not path.is_absolute() and request.file_path:
        path = Path(request.file_path).parent / path
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ExternalFileError(str(path), e.strerror or str(e)) from e
    if not request.external_file_with_variables:
        return data
    encoding = request.external_file_encoding or "utf-8"
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError as e:
        raise ExternalFileError(str(path), f"not valid {encoding}") from e
    return resolve(text, resolved.scopes)


def timeout_seconds(resolved: ResolvedRequest, *fallbacks: float | None) -> float:
    """@timeout wins, then the first truthy fallback, then DEFAULT_TIMEOUT."""
    if resolved.request.timeout is not None:
        return resolved.request.timeout.total_seconds()
    for t in fallbacks:
        if t:
            return t
    return DEFAULT_TIMEOUT


def prepare_request(
    resolved: ResolvedRequest,
    defaults: dict | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Keyword arguments for executor.execute_request.

    Config default headers are added only where the request lacks them.
    A multipart/form-data body with `< path` parts becomes `form_data`
    instead of a raw body.
    """
    defaults = defaults or {}
    url = apply_base_url(resolved.url, resolve_value(defaults.get("base_url")))

    headers = resolved.header_dict()
    for name, value in (defaults.get("headers") or {}).items():
        name = canonical_header_name(str(name))
        if name not in headers:
            headers[name] = resolve(str(resolve_value(value)), resolved.scopes)

    body: str | bytes | None = resolved.body or None
    if resolved.request.external_file_path:
        body = read_external_body(resolved)

    form_data = None
    content_type = headers.get("Content-Type", "")
    if isinstance(body, str) and has_file_parts(content_type, body):
        base_dir = Path(resolved.request.file_path).parent
        form_data = multipart_form_data(content_type, body, base_dir)
        body = None

    return {
        "method": resolved.method,
        "url": url,
        "headers": headers,
        "body": body,
        "form_data": form_data,
        "timeout": timeout_seconds(resolved, timeout, defaults.get("timeout")),
        "allow_redirects": not resolved.request.no_redirect,
        "use_cookie_jar": not resolved.request.no_cookie_jar,
    }
