"""reqfile multipart - multipart/form-data bodies with `< path` file parts.

A part whose content is `< ./path` is uploaded from that file; every other
part is a plain form field. The parts are handed to requests as `data=` and
`files=`, and requests writes the payload with a boundary of its own.
"""

import logging
import mimetypes
import re
from pathlib import Path

from reqfile.errors import ExternalFileError, MultipartError

logger = logging.getLogger(__name__)

MULTIPART_FORM_DATA = "multipart/form-data"
FILE_REFERENCE = "< "

_BOUNDARY_RE = re.compile(r"boundary=([^;]+)", re.IGNORECASE)
_NAME_RE = re.compile(r'\bname="([^"]*)"', re.IGNORECASE)
_FILENAME_RE = re.compile(r'\bfilename="([^"]*)"', re.IGNORECASE)


class MultipartPart:
    """One section of a multipart body."""

    def __init__(self, name: str, content: str = "", filename: str = "", content_type: str = ""):
        self.name = name
        self.content = content
        self.filename = filename
        self.content_type = content_type
        self.file_path: str = ""
        if content.startswith(FILE_REFERENCE):
            self.file_path = content[len(FILE_REFERENCE):].strip()

    @property
    def is_file(self) -> bool:
        return bool(self.file_path)


def has_file_parts(content_type: str, body: str) -> bool:
    return MULTIPART_FORM_DATA in content_type.lower() and FILE_REFERENCE in body


def boundary_from_content_type(content_type: str) -> str | None:
    m = _BOUNDARY_RE.search(content_type)
    if not m:
        return None
    return m.group(1).strip().strip('"') or None


def _parse_section(section: str) -> MultipartPart | None:
    head, _, content = section.partition("\n\n")
    name = filename = content_type = ""
    for line in head.splitlines():
        header, _, value = line.partition(":")
        header = header.strip().lower()
        if header == "content-disposition":
            m = _NAME_RE.search(value)
            name = m.group(1) if m else ""
            m = _FILENAME_RE.search(value)
            filename = m.group(1) if m else ""
        elif header == "content-type":
            content_type = value.strip()
    if not name:
        return None
    return MultipartPart(name, content.strip(), filename, content_type)


def parse_multipart_body(body: str, boundary: str) -> list[MultipartPart]:
    """Split a written-out multipart body into its named parts.

    Each section is split into part headers and content at the first blank
    line. Sections without a `name=` in Content-Disposition are skipped.
    """
    parts = []
    for section in body.replace("\r\n", "\n").split("--" + boundary):
        section = section.strip()
        if not section or section == "--":
            continue
        part = _parse_section(section)
        if part is None:
            logger.debug("skipping multipart section without a name: %.40r", section)
            continue
        parts.append(part)
    return parts


def build_form_data(parts: list[MultipartPart], base_dir: Path) -> dict:
    """`{"data": ..., "files": ...}` for executor.execute_request.

    File parts are read relative to base_dir. The upload filename defaults to
    the file's basename and the content type is guessed from it.
    """
    data: dict[str, str] = {}
    files: dict[str, tuple[str, bytes, str]] = {}
    for part in parts:
        if not part.is_file:
            data[part.name] = part.content
            continue
        path = Path(part.file_path)
        if not path.is_absolute():
            path = base_dir / path
        try:
            contents = path.read_bytes()
        except OSError as e:
            raise ExternalFileError(str(path), e.strerror or str(e)) from e
        filename = part.filename or path.name
        mime = part.content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        files[part.name] = (filename, contents, mime)
    return {"data": data, "files": files}


def multipart_form_data(content_type: str, body: str, base_dir: Path) -> dict:
    """Form data for a multipart body that references files."""
    boundary = boundary_from_content_type(content_type)
    if boundary is None:
        raise MultipartError(f"no boundary in Content-Type: {content_type}")
    parts = parse_multipart_body(body, boundary)
    if not parts:
        raise MultipartError(f"no named parts found for boundary {boundary}")
    logger.debug("multipart body with %d part(s)", len(parts))
    return build_form_data(parts, base_dir)
