"""reqfile variables - {{...}} placeholder resolution across variable scopes.

Resolution order for {{name}} (first hit wins):
  1. programmatic variables (-v flags, config `variables`)
  2. file variables (@name = value), request snapshot over file map
  3. selected environment (http-client.env.json + private override)
  4. global environment ($shared section)
  5. OS environment
  6. .env file next to the request file
  7. inline fallback ({{name | fallback}}), else empty string

{{$name}} placeholders only come from the request-scoped map ($uuid,
$timestamp, ...); anything else with a `$` is left for the dynamic
generators in reqfile.sysvars.
"""

import logging
import os
import re
from collections.abc import Mapping
from typing import Any

from reqfile.models import ParsedFile, Request, try_parse_url
from reqfile.sysvars import (
    DynamicContext,
    generate_request_scoped_variables,
    is_dynamic_placeholder,
    substitute_dynamic_variables,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*(.*?)\s*\}\}")
MAX_PASSES = 10


class VariableScopes:
    """Ordered variable sources consulted for one request.

    `file` is mutated: file variables holding a dynamic generator are replaced
    by their generated value on first use, so build one instance per request.
    """

    def __init__(
        self,
        programmatic: Mapping[str, Any] | None = None,
        file: dict[str, str] | None = None,
        environment: Mapping[str, str] | None = None,
        global_: Mapping[str, str] | None = None,
        dotenv: Mapping[str, str] | None = None,
        request_scoped: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.programmatic = dict(programmatic or {})
        self.file = dict(file or {})
        self.environment = dict(environment or {})
        self.global_ = dict(global_ or {})
        self.dotenv = dict(dotenv or {})
        if request_scoped is None:
            request_scoped = generate_request_scoped_variables()
        self.request_scoped = dict(request_scoped)
        self.environ = os.environ if environ is None else environ

    @classmethod
    def for_request(
        cls,
        request: Request,
        parsed_file: ParsedFile,
        programmatic: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "VariableScopes":
        return cls(
            programmatic=programmatic,
            file={**parsed_file.file_variables, **request.active_variables},
            environment=parsed_file.environment_variables,
            global_=parsed_file.global_variables,
            dotenv=parsed_file.dotenv_variables,
            environ=environ,
        )

    def dynamic_context(self) -> DynamicContext:
        return DynamicContext(dotenv=self.dotenv, programmatic=self.programmatic, environ=self.environ)

    def lookup(self, name: str, evaluate_dynamic: bool = True) -> str | None:
        """Value of a plain (non-$) variable, or None when no source defines it."""
        if name in self.programmatic:
            return str(self.programmatic[name])
        if name in self.file:
            value = self.file[name]
            if evaluate_dynamic and is_dynamic_placeholder(value, self.request_scoped):
                value = substitute_dynamic_variables(value, self.dynamic_context())
                self.file[name] = value
                logger.debug("memoized dynamic value for %s", name)
            return value
        for source in (self.environment, self.global_, self.environ, self.dotenv):
            if name in source:
                return source[name]
        return None


def split_directive(directive: str) -> tuple[str, str | None]:
    """`name | fallback` -> ("name", "fallback"); no pipe -> (name, None)."""
    if "|" not in directive:
        return directive.strip(), None
    name, fallback = directive.split("|", 1)
    return name.strip(), fallback.strip()


def _resolve_pass(text: str, scopes: VariableScopes, partial: bool) -> str:
    def _replace(m: re.Match) -> str:
        name, fallback = split_directive(m.group(1))
        if name.startswith("$"):
            return scopes.request_scoped.get(name, m.group(0))
        value = scopes.lookup(name, evaluate_dynamic=not partial)
        if partial:
            # a generator behind a variable stays a reference so that every
            # alias shares the value memoized for that variable
            if value is None or is_dynamic_placeholder(value, scopes.request_scoped):
                return m.group(0)
            return value
        if value is not None:
            return value
        if fallback is not None:
            return fallback
        logger.debug("variable %s is undefined, using empty string", name)
        return ""

    return PLACEHOLDER_RE.sub(_replace, text)


def resolve_variables(text: str, scopes: VariableScopes, partial: bool = False) -> str:
    """Scoped placeholder resolution, repeated until stable or MAX_PASSES.

    With partial=True only placeholders that hit a source are replaced;
    misses, fallbacks and generator placeholders stay as written, and so
    does a reference to a variable whose value is a generator.
    """
    if not text or "{{" not in text:
        return text
    for _ in range(MAX_PASSES):
        resolved = _resolve_pass(text, scopes, partial)
        if resolved == text:
            break
        text = resolved
    else:
        logger.debug("stopped resolving after %d passes: %s", MAX_PASSES, text)
    return text


def resolve(text: str, scopes: VariableScopes) -> str:
    """Full resolution: scoped lookup first, then dynamic generators."""
    text = resolve_variables(text, scopes)
    return substitute_dynamic_variables(text, scopes.dynamic_context())


class ResolvedRequest:
    """A request with every placeholder in URL, headers and body resolved."""

    def __init__(self, request: Request, scopes: VariableScopes):
        self.request = request
        self.scopes = scopes
        self.name: str = request.name
        self.method: str = request.method
        self.url: str = ""
        self.headers: dict[str, list[str]] = {}
        self.body: str = ""

    @property
    def parsed_url(self):
        return try_parse_url(self.url)

    def header_dict(self) -> dict[str, str]:
        """Headers flattened for the HTTP client.

        Repeated values are joined with ', ', except Cookie which uses '; '.
        """
        return {k: ("; " if k == "Cookie" else ", ").join(v) for k, v in self.headers.items()}


def substitute_request(
    request: Request,
    parsed_file: ParsedFile,
    variables: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ResolvedRequest:
    """Resolve URL, header values and body of one request.

    All three share one request-scoped map and one memoization map, so
    {{$uuid}} or a file variable holding {{$randomInt 1 9}} yields the same
    value everywhere in this request.
    """
    scopes = VariableScopes.for_request(request, parsed_file, programmatic=variables, environ=environ)
    resolved = ResolvedRequest(request, scopes)
    resolved.url = resolve(request.raw_url, scopes)
    for name, values in request.headers.items():
        resolved.headers[name] = [resolve(v, scopes) for v in values]
    resolved.body = resolve(request.raw_body, scopes)
    return resolved
