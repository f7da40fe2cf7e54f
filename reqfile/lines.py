"""reqfile lines - classification of single request-file lines."""

import enum
import re

SEPARATOR = "###"
COMMENT_PREFIXES = ("#", "//")

# RFC 7230 tchar
_TOKEN_RE = re.compile(r"^[A-Za-z0-9!#$%&'*+\-.^_`|~]+$")
_VERSION_RE = re.compile(r"^HTTP/\d+(\.\d+)?$", re.IGNORECASE)
_DIRECTIVE_RE = re.compile(r"^@([A-Za-z][\w-]*)(?:\s+(.*))?$")
_IMPORT_RE = re.compile(r"""^@import\s+(?:"([^"]*)"|'([^']*)')\s*$""")

EXTERNAL_FILE_ENCODINGS = frozenset(
    {"utf-8", "utf8", "latin1", "iso-8859-1", "ascii", "cp1252", "windows-1252"}
)


class LineKind(enum.Enum):
    BLANK = "blank"
    SEPARATOR = "separator"
    COMMENT = "comment"
    VARIABLE = "variable"
    CONTENT = "content"


def classify_line(line: str) -> LineKind:
    """Tag one physical line.

    Order matters: `###` is also a `#` comment, so separators are checked first.
    """
    stripped = line.strip()
    if not stripped:
        return LineKind.BLANK
    if stripped.startswith(SEPARATOR):
        return LineKind.SEPARATOR
    if stripped.startswith(COMMENT_PREFIXES):
        return LineKind.COMMENT
    if stripped.startswith("@"):
        return LineKind.VARIABLE
    return LineKind.CONTENT


def is_http_token(value: str) -> bool:
    return bool(value) and _TOKEN_RE.match(value) is not None


def is_http_version(value: str) -> bool:
    return _VERSION_RE.match(value) is not None


def separator_name(line: str) -> str:
    """Text after `###`, trimmed."""
    return line.strip()[len(SEPARATOR):].strip()


def comment_body(line: str) -> str:
    """Strip the comment prefix and surrounding whitespace."""
    stripped = line.strip()
    for prefix in ("//", "#"):
        if stripped.startswith(prefix):
            return stripped[len(prefix):].strip()
    return stripped


def parse_directive(comment: str) -> tuple[str, str] | None:
    """Split a comment body like `@timeout 500` into ("timeout", "500").

    Returns None when the comment is not a directive.
    """
    m = _DIRECTIVE_RE.match(comment)
    if not m:
        return None
    return m.group(1), (m.group(2) or "").strip()


def parse_import(comment: str) -> str | None:
    """Path of an `@import "path"` comment body, or None."""
    m = _IMPORT_RE.match(comment)
    if not m:
        return None
    return m.group(1) if m.group(1) is not None else m.group(2)


def parse_variable_definition(line: str) -> tuple[str, str] | None:
    """Split `@name = value` into (name, value).

    Returns None when there is no '='. The name may come back empty.
    """
    stripped = line.strip()[1:]
    if "=" not in stripped:
        return None
    name, value = stripped.split("=", 1)
    return name.strip(), value.strip()


def parse_external_file_line(line: str) -> tuple[str, str, bool] | None:
    """Parse `< path`, `<@ path`, `<@ encoding path` or `<@encoding path`.

    The encoding is only recognized when it is in EXTERNAL_FILE_ENCODINGS;
    otherwise the whole remainder is the path. Returns (path, encoding,
    with_variables) or None when the line is not an external file reference.
    """
    stripped = line.strip()
    if stripped.startswith("<@"):
        parts = stripped[2:].split()
        if len(parts) >= 2 and parts[0].lower() in EXTERNAL_FILE_ENCODINGS:
            return " ".join(parts[1:]), parts[0].lower(), True
        path = stripped[2:].strip()
        return (path, "", True) if path else None
    if stripped.startswith("< "):
        path = stripped[2:].strip()
        return (path, "", False) if path else None
    return None
