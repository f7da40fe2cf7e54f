"""reqfile models - parsed request and file containers."""

import datetime
from urllib.parse import SplitResult, urlsplit


def canonical_header_name(name: str) -> str:
    """Return the canonical form of a header name: content-type -> Content-Type."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def try_parse_url(raw_url: str) -> SplitResult | None:
    """Best-effort URL parse. Returns None for placeholder-bearing or invalid URLs."""
    if not raw_url or "{{" in raw_url:
        return None
    try:
        return urlsplit(raw_url)
    except ValueError:
        return None


class Request:
    """One HTTP request definition extracted from a request file."""

    def __init__(self, file_path: str = "", line_number: int = 0):
        self.name: str = ""
        self.method: str = ""
        self.raw_url: str = ""
        self.url: SplitResult | None = None
        self.http_version: str = ""
        self.headers: dict[str, list[str]] = {}
        self.raw_body: str = ""
        self.external_file_path: str = ""
        self.external_file_encoding: str = ""
        self.external_file_with_variables: bool = False
        self.active_variables: dict[str, str] = {}
        self.no_redirect: bool = False
        self.no_cookie_jar: bool = False
        self.timeout: datetime.timedelta | None = None
        self.file_path: str = file_path
        self.line_number: int = line_number

    def add_header(self, name: str, value: str) -> None:
        self.headers.setdefault(canonical_header_name(name), []).append(value)

    def get_header(self, name: str) -> str | None:
        """First value of a header, or None."""
        values = self.headers.get(canonical_header_name(name))
        return values[0] if values else None

    @property
    def is_complete(self) -> bool:
        return bool(self.method and self.raw_url)

    def __repr__(self) -> str:
        label = f" {self.name!r}" if self.name else ""
        return f"<Request{label} {self.method} {self.raw_url}>"


class ParsedFile:
    """Ordered requests plus the variable scopes collected for one file."""

    def __init__(self, file_path: str):
        self.file_path: str = file_path
        self.requests: list[Request] = []
        self.file_variables: dict[str, str] = {}
        self.environment_variables: dict[str, str] = {}
        self.global_variables: dict[str, str] = {}
        self.dotenv_variables: dict[str, str] = {}
        self.imported_files: list[str] = []

    def find(self, name: str) -> list[Request]:
        """Requests whose name matches exactly."""
        return [r for r in self.requests if r.name == name]

    def __repr__(self) -> str:
        return f"<ParsedFile {self.file_path} requests={len(self.requests)}>"
