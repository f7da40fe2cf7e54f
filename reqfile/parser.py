"""reqfile parser - state machine turning request-file text into Request objects.

Every line is classified first (see reqfile.lines). Separators, comments and
variable definitions are handled the same way in every state; only content
and blank lines are interpreted according to the current ParserState.
"""

import datetime
import enum
import logging
from collections.abc import Mapping
from typing import Any

from reqfile.errors import HeaderError, VariableDefinitionError
from reqfile.lines import (
    SEPARATOR,
    LineKind,
    classify_line,
    comment_body,
    is_http_token,
    is_http_version,
    parse_directive,
    parse_external_file_line,
    parse_import,
    parse_variable_definition,
    separator_name,
)
from reqfile.models import ParsedFile, Request, try_parse_url
from reqfile.variables import VariableScopes, resolve_variables

logger = logging.getLogger(__name__)

FORM_URLENCODED = "application/x-www-form-urlencoded"

# Methods that start a new request while headers are being read.
STANDARD_METHODS = frozenset(
    {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE", "CONNECT"}
)


class ParserState(enum.Enum):
    BETWEEN_REQUESTS = "between_requests"
    REQUEST_LINE = "request_line"
    HEADERS = "headers"
    QUERY_PARAMS = "query_params"
    BODY = "body"


class BodyMode(enum.Enum):
    PLAIN = "plain"
    FORM_URLENCODED = "form_urlencoded"
    EXTERNAL_FILE = "external_file"


def _is_bare_url(token: str) -> bool:
    return token.startswith(("http://", "https://"))


def split_request_line(line: str) -> tuple[str, str, str] | None:
    """Split `METHOD URL [HTTP/x]` or a bare `https://...` URL.

    Returns (method, url, http_version); url may be empty when only a method
    was given. None means the line is not a request line.
    """
    parts = line.split()
    if not parts:
        return None
    if len(parts) == 1 and _is_bare_url(parts[0]):
        return "GET", parts[0], "HTTP/1.1"
    method = parts[0]
    if not is_http_token(method):
        return None
    rest = parts[1:]
    version = ""
    if len(rest) > 1 and is_http_version(rest[-1]):
        version = rest.pop()
    return method, " ".join(rest), version


class RequestFileParser:
    """Single-pass parser for one request file.

    Variable definitions are resolved as they are read against the sources
    known at that point. Only placeholders that hit a source are replaced;
    `{{$...}}` generators, undefined names and fallbacks stay as written so
    they are evaluated per request.
    """

    def __init__(
        self,
        file_path: str = "",
        variables: Mapping[str, Any] | None = None,
        environment: Mapping[str, str] | None = None,
        global_variables: Mapping[str, str] | None = None,
        dotenv: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.file_path = file_path
        self.programmatic = dict(variables or {})
        self.environment = dict(environment or {})
        self.global_variables = dict(global_variables or {})
        self.dotenv = dict(dotenv or {})
        self.environ = environ

        self.parsed = ParsedFile(file_path)
        self.file_variables: dict[str, str] = {}
        self.state = ParserState.BETWEEN_REQUESTS
        self.body_mode = BodyMode.PLAIN
        self.current: Request | None = None
        self.next_name = ""
        self.body_lines: list[str] = []
        self.query_parts: list[str] = []
        self.line_number = 0

    # ── Driver ──────────────────────────────────────────────────────────

    def parse(self, text: str) -> ParsedFile:
        for line_number, line in enumerate(text.splitlines(), start=1):
            self.line_number = line_number
            self.feed(line)
        self._finalize()
        self.parsed.file_variables = dict(self.file_variables)
        return self.parsed

    def feed(self, line: str) -> None:
        kind = classify_line(line)
        if kind is LineKind.SEPARATOR:
            self._finalize()
            self.next_name = separator_name(line)
        elif kind is LineKind.COMMENT:
            self._handle_comment(line)
        elif kind is LineKind.VARIABLE:
            self._handle_variable(line)
        elif kind is LineKind.BLANK:
            self._handle_blank()
        else:
            self._handle_content(line)

    # ── Request lifecycle ───────────────────────────────────────────────

    def _ensure_request(self) -> Request:
        if self.current is None:
            self.current = Request(file_path=self.file_path, line_number=self.line_number)
            self.state = ParserState.REQUEST_LINE
        return self.current

    def _finalize(self) -> None:
        request = self.current
        if request is not None:
            self._flush_query()
            if self.body_mode is not BodyMode.EXTERNAL_FILE:
                request.raw_body = "\n".join(self.body_lines).rstrip()
            if request.is_complete:
                request.active_variables = dict(self.file_variables)
                request.url = try_parse_url(request.raw_url)
                self.parsed.requests.append(request)
            else:
                logger.debug(
                    "%s:%d: dropping block without method and URL", self.file_path, request.line_number
                )
        self.current = None
        self.state = ParserState.BETWEEN_REQUESTS
        self.body_mode = BodyMode.PLAIN
        self.body_lines = []
        self.query_parts = []

    def _flush_query(self) -> None:
        request = self.current
        if not self.query_parts or request is None or not request.raw_url:
            self.query_parts = []
            return
        joiner = "&" if "?" in request.raw_url else "?"
        request.raw_url += joiner + "&".join(self.query_parts)
        self.query_parts = []

    # ── Line handlers ───────────────────────────────────────────────────

    def _handle_comment(self, line: str) -> None:
        body = comment_body(line)
        if body.startswith(SEPARATOR):
            return
        import_path = parse_import(body)
        if import_path is not None:
            if import_path:
                self.parsed.imported_files.append(import_path)
            else:
                logger.warning("%s:%d: empty @import path", self.file_path, self.line_number)
            return
        directive = parse_directive(body)
        if directive is None:
            return
        name, value = directive
        if name == "name":
            normalized = " ".join(value.split())
            if normalized:
                self._ensure_request().name = normalized
        elif name == "no-redirect":
            self._ensure_request().no_redirect = True
        elif name == "no-cookie-jar":
            self._ensure_request().no_cookie_jar = True
        elif name == "timeout":
            self._apply_timeout(value)
        else:
            logger.debug("%s:%d: ignoring unknown directive @%s", self.file_path, self.line_number, name)

    def _apply_timeout(self, value: str) -> None:
        try:
            millis = int(value)
        except ValueError:
            millis = 0
        if millis <= 0:
            logger.warning(
                "%s:%d: invalid @timeout value %r, ignoring", self.file_path, self.line_number, value
            )
            return
        self._ensure_request().timeout = datetime.timedelta(milliseconds=millis)

    def _handle_variable(self, line: str) -> None:
        definition = parse_variable_definition(line)
        if definition is None:
            raise VariableDefinitionError(
                f"malformed variable definition, missing '=': {line.strip()}",
                file_path=self.file_path,
                line_number=self.line_number,
            )
        name, value = definition
        if not name:
            raise VariableDefinitionError(
                f"variable name cannot be empty: {line.strip()}",
                file_path=self.file_path,
                line_number=self.line_number,
            )
        scopes = VariableScopes(
            programmatic=self.programmatic,
            file=self.file_variables,
            environment=self.environment,
            global_=self.global_variables,
            dotenv=self.dotenv,
            request_scoped={},
            environ=self.environ,
        )
        self.file_variables[name] = resolve_variables(value, scopes, partial=True)

    def _handle_blank(self) -> None:
        if self.state is ParserState.BODY:
            if self.body_lines and self.body_mode is not BodyMode.EXTERNAL_FILE:
                self.body_lines.append("")
        elif self.state in (ParserState.HEADERS, ParserState.QUERY_PARAMS):
            self._start_body()

    def _handle_content(self, line: str) -> None:
        stripped = line.strip()
        if self.state is ParserState.BODY:
            self._handle_body_line(line)
        elif self.state in (ParserState.HEADERS, ParserState.QUERY_PARAMS):
            self._handle_header_block_line(line, stripped)
        elif self.state is ParserState.REQUEST_LINE and self.current.method:
            # method-only request line; this line carries the URL
            logger.debug(
                "%s:%d: treating line as URL for %s", self.file_path, self.line_number, self.current.method
            )
            self.current.raw_url = stripped
            self.state = ParserState.HEADERS
        else:
            self._handle_request_line(stripped)

    def _handle_header_block_line(self, line: str, stripped: str) -> None:
        request = self.current
        if stripped.startswith(("?", "&")):
            self.state = ParserState.QUERY_PARAMS
            param = stripped[1:].strip()
            if param:
                self.query_parts.append(param)
            return

        parts = stripped.split()
        if (len(parts) > 1 and parts[0] in STANDARD_METHODS) or (len(parts) == 1 and _is_bare_url(parts[0])):
            logger.warning(
                "%s:%d: request line replaces %s %s",
                self.file_path,
                self.line_number,
                request.method,
                request.raw_url,
            )
            self.query_parts = []
            self._handle_request_line(stripped)
            return

        if ":" in stripped and self._handle_header(stripped):
            return

        self._start_body()
        self._handle_body_line(line)

    def _handle_request_line(self, stripped: str) -> None:
        request_part, separator, trailer = stripped.partition(SEPARATOR)
        split = split_request_line(request_part.strip())
        if split is None:
            if ":" in stripped:
                logger.warning(
                    "%s:%d: header-like line without an active request, ignoring",
                    self.file_path,
                    self.line_number,
                )
            else:
                logger.warning(
                    "%s:%d: line outside of any request, ignoring", self.file_path, self.line_number
                )
            return

        request = self._ensure_request()
        request.method, request.raw_url, request.http_version = split
        if self.next_name and not request.name:
            request.name = self.next_name
        self.next_name = ""
        if request.raw_url:
            self.state = ParserState.HEADERS
        else:
            logger.warning("%s:%d: method %s without URL", self.file_path, self.line_number, request.method)
            self.state = ParserState.REQUEST_LINE

        if separator:
            self._finalize()
            self.next_name = trailer.strip()

    def _handle_header(self, stripped: str) -> bool:
        """Add a header to the current request. False when the line is not a header."""
        name, value = stripped.split(":", 1)
        name = name.strip()
        if not name or any(ch.isspace() for ch in name):
            raise HeaderError(
                f"malformed header line: {stripped}",
                file_path=self.file_path,
                line_number=self.line_number,
            )
        if not is_http_token(name):
            return False
        self._flush_query()
        self.current.add_header(name, value.strip())
        self.state = ParserState.HEADERS
        return True

    # ── Body ────────────────────────────────────────────────────────────

    def _start_body(self) -> None:
        self._flush_query()
        self.state = ParserState.BODY
        content_type = self.current.get_header("Content-Type") or ""
        if FORM_URLENCODED in content_type.lower():
            self.body_mode = BodyMode.FORM_URLENCODED
        else:
            self.body_mode = BodyMode.PLAIN

    def _handle_body_line(self, line: str) -> None:
        request = self.current
        if self.body_mode is BodyMode.EXTERNAL_FILE:
            logger.debug("%s:%d: ignoring line after external body reference", self.file_path, self.line_number)
            return

        if not self.body_lines:
            external = parse_external_file_line(line)
            if external is not None:
                path, encoding, with_variables = external
                request.external_file_path = path
                request.external_file_encoding = encoding
                request.external_file_with_variables = with_variables
                self.body_mode = BodyMode.EXTERNAL_FILE
                return

        stripped = line.strip()
        if self.body_mode is BodyMode.FORM_URLENCODED:
            if stripped.startswith("&"):
                param = stripped[1:].strip()
                if self.body_lines:
                    self.body_lines[-1] = self.body_lines[-1].strip() + "&" + param
                else:
                    self.body_lines.append(param)
                return
            if "=" in stripped and not stripped.startswith(("{", "[")):
                self.body_lines.append(stripped)
                return

        self.body_lines.append(line)


def parse_text(
    text: str,
    file_path: str = "",
    variables: Mapping[str, Any] | None = None,
    environment: Mapping[str, str] | None = None,
    global_variables: Mapping[str, str] | None = None,
    dotenv: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ParsedFile:
    """Parse one request file's text. @import directives are recorded, not followed."""
    parser = RequestFileParser(
        file_path,
        variables=variables,
        environment=environment,
        global_variables=global_variables,
        dotenv=dotenv,
        environ=environ,
    )
    return parser.parse(text)
