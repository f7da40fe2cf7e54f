"""reqfile errors - exception hierarchy for parsing and request preparation."""


class ReqfileError(Exception):
    """Base class for every error raised by reqfile."""


class ParseError(ReqfileError):
    """A request file could not be parsed.

    Carries the offending file and, where known, the 1-based line number.
    """

    def __init__(self, message: str, file_path: str | None = None, line_number: int | None = None):
        self.file_path = file_path
        self.line_number = line_number
        location = ""
        if file_path and line_number:
            location = f"{file_path}:{line_number}: "
        elif file_path:
            location = f"{file_path}: "
        super().__init__(f"{location}{message}")


class VariableDefinitionError(ParseError):
    """Malformed `@name = value` line (missing '=' or empty name)."""


class HeaderError(ParseError):
    """Malformed header line inside a request's header block."""


class RequestFileNotFoundError(ParseError, FileNotFoundError):
    """The request file passed to parse_file() does not exist."""

    def __init__(self, file_path: str):
        super().__init__("request file not found", file_path=file_path)


class CircularImportError(ParseError):
    """An @import chain leads back to a file that is already being parsed."""

    def __init__(self, stack: tuple[str, ...], target: str):
        self.stack = tuple(stack) + (target,)
        chain = " -> ".join(self.stack)
        super().__init__(f"circular import detected: {chain}", file_path=stack[-1] if stack else target)


class ImportNotFoundError(ParseError, FileNotFoundError):
    """An @import directive names a file that does not exist."""

    def __init__(self, importer: str, missing_path: str, line_number: int | None = None):
        self.importer = importer
        self.missing_path = missing_path
        super().__init__(
            f"imported file not found: {missing_path}",
            file_path=importer,
            line_number=line_number,
        )


class ExternalFileError(ReqfileError):
    """An external body file (`< path`) could not be read or decoded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"cannot read external body file {path}: {reason}")


class MultipartError(ReqfileError):
    """A multipart/form-data body with `< path` parts could not be split into parts."""
