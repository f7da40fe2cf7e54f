"""reqfile output - text rendering for the CLI."""

import json

from reqfile.models import ParsedFile


def format_output(
    result,  # RequestResult from executor.py
    verbose: bool = False,
    raw: bool = False,
) -> str:
    """Format a response.

    Default: STATUS / TIME / BODY. verbose adds HEADERS, raw prints the body only.
    """
    if result.error:
        return f"ERROR: {result.error}"

    if raw:
        body = result.body
        if isinstance(body, dict | list):
            return json.dumps(body, indent=2)
        return str(body) if body is not None else ""

    lines: list[str] = [
        f"STATUS: {result.status_code}",
        f"TIME: {int(result.elapsed_ms)}ms",
    ]

    if verbose and result.headers:
        lines.append("HEADERS:")
        for key, value in result.headers.items():
            lines.append(f"  {key}: {value}")

    body = result.body
    if body is not None and body != "":
        lines.append("BODY:")
        if isinstance(body, dict | list):
            lines.append(json.dumps(body, indent=2))
        else:
            lines.append(str(body))

    return "\n".join(lines)


def format_prepared(prepared: dict) -> str:
    """Render a prepared request the way it would go on the wire (for --dry-run)."""
    lines = [f"{prepared['method']} {prepared['url']}"]
    for name, value in prepared["headers"].items():
        lines.append(f"{name}: {value}")
    form_data = prepared.get("form_data")
    if form_data:
        lines.append("")
        for name, value in form_data.get("data", {}).items():
            lines.append(f"{name}={value}")
        for name, (filename, contents, mime) in form_data.get("files", {}).items():
            lines.append(f"{name}=@{filename} ({mime}, {len(contents)} bytes)")
    body = prepared.get("body")
    if body:
        lines.append("")
        if isinstance(body, bytes):
            lines.append(f"<{len(body)} bytes>")
        else:
            lines.append(body)
    return "\n".join(lines)


def format_request_list(parsed: ParsedFile) -> str:
    """One line per request: index, name and request line."""
    lines = [f"{len(parsed.requests)} request(s) in {parsed.file_path}:"]
    for i, request in enumerate(parsed.requests):
        label = request.name or "-"
        lines.append(f"  [{i}] {label:<20} {request.method} {request.raw_url}")
    return "\n".join(lines)
