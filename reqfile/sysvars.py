"""reqfile system variables - dynamic {{$...}} generators.

Two groups:
- request-scoped values ($uuid, $timestamp, ...) generated once per request
  by generate_request_scoped_variables() and looked up by the resolver;
- the GENERATORS catalog, evaluated at every occurrence by
  substitute_dynamic_variables().

A handler returning None leaves the placeholder text untouched.
"""

import datetime
import logging
import os
import random
import re
import string
import uuid
from collections.abc import Callable, Mapping
from typing import Any, NamedTuple

from reqfile import fakedata
from reqfile.fakedata import fake

logger = logging.getLogger(__name__)

HEX = "0123456789abcdef"
ALPHABETIC = string.ascii_lowercase + string.ascii_uppercase
ALPHANUMERIC = ALPHABETIC + string.digits
ALPHANUMERIC_UNDERSCORE = ALPHANUMERIC + "_"
FULL_CHARSET = ALPHANUMERIC + "!@#$%^&*()_+-=[]{};':\",./<>?"

DEFAULT_INT_RANGE = (0, 100)
DEFAULT_FLOAT_RANGE = (0.0, 1.0)
DEFAULT_STRING_LENGTH = 16
DEFAULT_PASSWORD_LENGTH = 12

_SYSTEM_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\$[^}]*?)\s*\}\}")
_DATETIME_ARG_RE = re.compile(r'"([^"]*)"|([^"\s}]+)')

_INT_RANGE = r"(?:\s+(-?\d+)\s+(-?\d+))?"
_FLOAT_RANGE = r"(?:\s+(-?\d*\.?\d+)\s+(-?\d*\.?\d+))?"
_LENGTH = r"(?:\s+(\d+))?"
_ENV_NAME = r"([A-Za-z_][A-Za-z0-9_]*)"


class DynamicContext:
    """Inputs a generator may read besides its own arguments."""

    def __init__(
        self,
        dotenv: Mapping[str, str] | None = None,
        programmatic: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.dotenv = dotenv or {}
        self.programmatic = programmatic or {}
        self.environ = os.environ if environ is None else environ


Handler = Callable[[re.Match, DynamicContext], str | None]


class Generator(NamedTuple):
    name: str
    pattern: re.Pattern
    handler: Handler


# ── Helpers ─────────────────────────────────────────────────────────────


def random_string(length: int, charset: str) -> str:
    if length <= 0 or not charset:
        return ""
    return "".join(random.choice(charset) for _ in range(length))


def rfc3339(moment: datetime.datetime) -> str:
    """2024-01-02T03:04:05Z style timestamp (offset kept for non-UTC times)."""
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


def format_datetime(moment: datetime.datetime, fmt: str) -> str | None:
    """Render moment as rfc1123, iso8601 or timestamp; None for any other format."""
    fmt = fmt.lower()
    if fmt == "rfc1123":
        return moment.strftime("%a, %d %b %Y %H:%M:%S %Z")
    if fmt == "iso8601":
        return rfc3339(moment)
    if fmt == "timestamp":
        return str(int(moment.timestamp()))
    return None


def generate_request_scoped_variables() -> dict[str, str]:
    """Values computed once per request so repeated references agree."""
    now = datetime.datetime.now(datetime.timezone.utc)
    request_uuid = str(uuid.uuid4())
    return {
        "$uuid": request_uuid,
        "$guid": request_uuid,
        "$random.uuid": request_uuid,
        "$timestamp": str(int(now.timestamp())),
        "$isoTimestamp": rfc3339(now),
        "$randomInt": str(random.randint(0, 1000)),
    }


# ── Handlers ────────────────────────────────────────────────────────────


def _random_int(m: re.Match, ctx: DynamicContext) -> str | None:
    low, high = DEFAULT_INT_RANGE
    if m.group(1) is not None:
        low, high = int(m.group(1)), int(m.group(2))
    if low > high:
        logger.debug("swapped bounds in %s, leaving as is", m.group(0))
        return None
    return str(random.randint(low, high))


def _random_float(m: re.Match, ctx: DynamicContext) -> str | None:
    low, high = DEFAULT_FLOAT_RANGE
    if m.group(1) is not None:
        low, high = float(m.group(1)), float(m.group(2))
    if low > high:
        logger.debug("swapped bounds in %s, leaving as is", m.group(0))
        return None
    return f"{low + random.random() * (high - low):f}"


def _charset_handler(charset: str, default_length: int = DEFAULT_STRING_LENGTH) -> Handler:
    def handler(m: re.Match, ctx: DynamicContext) -> str:
        length = default_length if m.group(1) is None else int(m.group(1))
        return random_string(length, charset)

    return handler


def _random_password(m: re.Match, ctx: DynamicContext) -> str:
    length = DEFAULT_PASSWORD_LENGTH if m.group(1) is None else int(m.group(1))
    charset = FULL_CHARSET
    override = ctx.programmatic.get("password")
    if isinstance(override, Mapping) and override.get("charset"):
        charset = str(override["charset"])
    return random_string(length, charset)


def _env_var(m: re.Match, ctx: DynamicContext) -> str:
    return ctx.environ.get(m.group(1), "")


def _dotenv_var(m: re.Match, ctx: DynamicContext) -> str:
    return ctx.dotenv.get(m.group(1), "")


def _process_env_var(m: re.Match, ctx: DynamicContext) -> str | None:
    value = ctx.environ.get(m.group(1))
    if value is None:
        logger.debug("process env var %s is not set, leaving placeholder", m.group(1))
    return value


def _datetime(m: re.Match, ctx: DynamicContext) -> str | None:
    args = [quoted or bare for quoted, bare in _DATETIME_ARG_RE.findall(m.group(2) or "")]
    fmt = args[0] if args else "iso8601"
    if m.group(1) == "datetime":
        now = datetime.datetime.now(datetime.timezone.utc)
    else:
        now = datetime.datetime.now().astimezone()
    result = format_datetime(now, fmt)
    if result is None:
        logger.debug("unsupported date format %r in %s", fmt, m.group(0))
    return result


def _constant(producer: Callable[[], str]) -> Handler:
    return lambda m, ctx: producer()


# ── Catalog ─────────────────────────────────────────────────────────────


def _placeholder(name: str, args: str = "") -> re.Pattern:
    return re.compile(r"\{\{\s*\$" + re.escape(name) + args + r"\s*\}\}")


def _fakers() -> list[Generator]:
    entries = []
    for suffix, producer in fakedata.FAKERS.items():
        dotted = "random." + suffix[0].lower() + suffix[1:]
        entries.append(Generator("random" + suffix, _placeholder("random" + suffix), _constant(producer)))
        entries.append(Generator(dotted, _placeholder(dotted), _constant(producer)))
    return entries


def _build_catalog() -> tuple[Generator, ...]:
    entries = [
        Generator("randomInt", _placeholder("randomInt", _INT_RANGE), _random_int),
        Generator("random.integer", _placeholder("random.integer", _INT_RANGE), _random_int),
        Generator("randomFloat", _placeholder("randomFloat", _FLOAT_RANGE), _random_float),
        Generator("random.float", _placeholder("random.float", _FLOAT_RANGE), _random_float),
        Generator(
            "randomBoolean",
            _placeholder("randomBoolean"),
            _constant(lambda: random.choice(("true", "false"))),
        ),
        Generator("randomHex", _placeholder("randomHex", _LENGTH), _charset_handler(HEX)),
        Generator("random.hexadecimal", _placeholder("random.hexadecimal", _LENGTH), _charset_handler(HEX)),
        Generator("random.alphabetic", _placeholder("random.alphabetic", _LENGTH), _charset_handler(ALPHABETIC)),
        Generator(
            "randomAlphaNumeric",
            _placeholder("randomAlphaNumeric", _LENGTH),
            _charset_handler(ALPHANUMERIC_UNDERSCORE),
        ),
        Generator(
            "random.alphanumeric",
            _placeholder("random.alphanumeric", _LENGTH),
            _charset_handler(ALPHANUMERIC),
        ),
        Generator("randomString", _placeholder("randomString", _LENGTH), _charset_handler(FULL_CHARSET)),
        Generator("randomPassword", _placeholder("randomPassword", _LENGTH), _random_password),
        Generator("randomEmail", _placeholder("randomEmail"), _constant(fake.email)),
        Generator("random.email", _placeholder("random.email"), _constant(fake.email)),
        Generator("randomDomain", _placeholder("randomDomain"), _constant(fake.domain_name)),
        Generator("randomIPv4", _placeholder("randomIPv4"), _constant(fake.ipv4)),
        Generator("randomIPv6", _placeholder("randomIPv6"), _constant(fake.ipv6)),
        Generator("randomUUID", _placeholder("randomUUID"), _constant(lambda: str(uuid.uuid4()))),
        Generator("randomColor", _placeholder("randomColor"), _constant(fake.hex_color)),
        Generator("randomWord", _placeholder("randomWord"), _constant(fake.word)),
        *_fakers(),
        Generator("env", re.compile(r"\{\{\s*\$env\." + _ENV_NAME + r"\s*\}\}"), _env_var),
        Generator("dotenv", _placeholder("dotenv", r"\s+" + _ENV_NAME), _dotenv_var),
        Generator("dotenv (encoded)", re.compile(r"%7B%7B\$dotenv\s+" + _ENV_NAME + r"%7D%7D"), _dotenv_var),
        Generator("processEnv", _placeholder("processEnv", r"\s+" + _ENV_NAME), _process_env_var),
        Generator(
            "processEnv (encoded)",
            re.compile(r"%7B%7B\$processEnv\s+" + _ENV_NAME + r"%7D%7D"),
            _process_env_var,
        ),
        Generator(
            "datetime",
            re.compile(r'\{\{\s*\$(datetime|localDatetime)((?:\s+(?:"[^"]*"|[^"\s}]+))*)\s*\}\}'),
            _datetime,
        ),
    ]
    return tuple(entries)


GENERATORS: tuple[Generator, ...] = _build_catalog()


# ── Substitution ────────────────────────────────────────────────────────


def substitute_dynamic_variables(
    text: str,
    context: DynamicContext | None = None,
    generators: tuple[Generator, ...] = GENERATORS,
) -> str:
    """Replace every dynamic generator placeholder in text.

    Each occurrence is evaluated on its own. Malformed arguments and
    unsupported formats leave the placeholder as written.
    """
    if not text or ("{{" not in text and "%7B%7B" not in text):
        return text
    ctx = context or DynamicContext()

    for generator in generators:

        def _replace(m: re.Match, handler: Handler = generator.handler) -> str:
            value = handler(m, ctx)
            return m.group(0) if value is None else value

        text = generator.pattern.sub(_replace, text)
    return text


def is_dynamic_placeholder(
    value: str,
    request_scoped: Mapping[str, str],
    generators: tuple[Generator, ...] = GENERATORS,
) -> bool:
    """True if value is exactly one generator placeholder not covered by request_scoped."""
    value = value.strip()
    m = _SYSTEM_PLACEHOLDER_RE.fullmatch(value)
    if not m or m.group(1) in request_scoped:
        return False
    return any(g.pattern.fullmatch(value) for g in generators)
