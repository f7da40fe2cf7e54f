"""reqfile CLI - run requests from .http / .rest files."""

import logging
import sys

import click

TOOL_HELP = """\
reqfile — Run HTTP requests described in .http / .rest files.

\b
USAGE
─────
  reqfile FILE [options]

  reqfile api.http                      # run every request in the file
  reqfile api.http -n login             # run only requests named "login"
  reqfile api.http -e dev -v token=abc  # select environment, set variables
  reqfile api.http --list               # list requests without sending
  reqfile api.http --dry-run            # print resolved requests only

\b
REQUEST FILE FORMAT
───────────────────
  \b
  @host = api.example.com
  # @import "common.http"

  ### login
  # @no-redirect
  # @timeout 5000
  POST https://{{host}}/login HTTP/1.1
  Content-Type: application/json

  {"user": "{{user | guest}}", "id": "{{$uuid}}"}

  ### next request
  GET https://{{host}}/items
    ?page=1
    &size=20

  Requests are separated by ###; text after ### names the next request.
  A blank line ends the headers. A body of "< file" sends a file as is,
  "<@ [encoding] file" sends it with variables substituted.

\b
VARIABLE PRECEDENCE
───────────────────
  {{name}} resolves from the first source that defines it:
  \b
  1. -v key=value, config defaults.variables
  2. @name = value in the request file (and its imports)
  3. selected environment (-e) in http-client.env.json,
     overridden by http-client.private.env.json
  4. "$shared" section of the same files
  5. OS environment
  6. .env next to the request file
  7. inline fallback {{name | fallback}}, else empty

\b
SYSTEM VARIABLES
────────────────
  \b
  {{$uuid}} {{$guid}} {{$random.uuid}}   same value within one request
  {{$timestamp}} {{$isoTimestamp}}        same value within one request
  {{$randomInt}}                          0..1000, same within one request
  {{$randomInt 1 10}}                     new value at each occurrence
  {{$randomFloat}} {{$randomHex 8}} {{$randomString 12}} {{$randomEmail}}
  {{$datetime rfc1123|iso8601|timestamp}} {{$localDatetime ...}}
  {{$processEnv NAME}} {{$env.NAME}} {{$dotenv NAME}}
  {{$randomFirstName}} {{$randomCity}} {{$randomUserAgent}} ...

\b
OUTPUT FORMAT
─────────────
    STATUS: 200
    TIME: 45ms
    BODY:
    {"id": 1, "name": "test"}

  --verbose adds response headers.
  --raw outputs only the body (for piping to jq, etc).
  With several requests each block is preceded by "### <name>".

\b
CONFIG FILE FORMAT (.reqfile.yaml)
──────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .reqfile.yaml / .reqfile.yml / reqfile.yaml / reqfile.yml in CWD
    3. ~/.reqfile/config.yaml (global)

  \b
  defaults:
    environment: dev                # used when -e is not given
    base_url: ${API_BASE_URL}       # prefix for relative request URLs
    timeout: 30                     # seconds, @timeout overrides
    headers:                        # added when a request lacks them
      Accept: application/json
    variables:
      token: ${API_TOKEN}
"""

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument("request_file", required=False)
@click.option(
    "-e",
    "--env",
    "env_name",
    default=None,
    help="Environment name from http-client.env.json. Default: config defaults.environment.",
)
@click.option(
    "-v",
    "--var",
    multiple=True,
    help="Variable as key=value. Overrides every other source. Repeatable.",
)
@click.option(
    "-n",
    "--name",
    "request_names",
    multiple=True,
    help="Run only requests with this name. Repeatable.",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .reqfile.yaml in CWD, then ~/.reqfile/config.yaml.",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Request timeout in seconds. Default: 30. A request's @timeout wins.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Print the resolved requests instead of sending them.",
)
@click.option(
    "--list",
    "show_list",
    is_flag=True,
    default=False,
    help="List the requests in the file.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Include response headers in output.",
)
@click.option(
    "--raw",
    is_flag=True,
    default=False,
    help="Output the response body only. Useful for piping.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Log level for diagnostics on stderr.",
)
def main(
    request_file,
    env_name,
    var,
    request_names,
    config_file,
    timeout,
    dry_run,
    show_list,
    verbose,
    raw,
    log_level,
):
    """Run requests from a request file."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    from reqfile.core import (
        config_variables,
        load_config,
        prepare_request,
        resolve_config_path,
    )
    from reqfile.errors import ReqfileError
    from reqfile.executor import execute_request, new_session
    from reqfile.imports import parse_file
    from reqfile.output import format_output, format_prepared, format_request_list
    from reqfile.variables import substitute_request

    if not request_file:
        ctx = click.get_current_context()
        click.echo(ctx.get_help())
        ctx.exit(1)

    # --- Load config ---
    config_path = resolve_config_path(config_file)
    config = load_config(config_path)
    defaults = config.get("defaults", {})

    variables = config_variables(defaults)
    variables.update(_parse_vars(var))
    env_name = env_name or defaults.get("environment")

    # --- Parse ---
    try:
        parsed = parse_file(request_file, variables=variables, environment=env_name)
    except ReqfileError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    if show_list:
        click.echo(format_request_list(parsed))
        return

    if not parsed.requests:
        click.echo(f"ERROR: No requests found in {request_file}.", err=True)
        sys.exit(1)

    selected = _select_requests(parsed, request_names)

    # --- Execute ---
    session = new_session()
    for request in selected:
        label = request.name or f"{request.method} {request.raw_url}"
        if len(selected) > 1 and not raw:
            click.echo(f"### {label}")
        try:
            resolved = substitute_request(request, parsed, variables)
            prepared = prepare_request(resolved, defaults, timeout)
        except ReqfileError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)

        if dry_run:
            click.echo(format_prepared(prepared))
            continue

        result = execute_request(**prepared, session=session)
        if result.error:
            click.echo(f"ERROR: {result.error}", err=True)
            sys.exit(1)
        click.echo(format_output(result, verbose=verbose, raw=raw))


# ── Helpers ──────────────────────────────────────────────────────────────


def _parse_vars(var_strings):
    """Parse -v key=value strings into a dict. Entries without '=' are skipped."""
    variables = {}
    for v_str in var_strings:
        if "=" in v_str:
            k, val = v_str.split("=", 1)
            variables[k.strip()] = val.strip()
    return variables


def _select_requests(parsed, names):
    """Requests matching any of names, in file order. All requests when names is empty."""
    if not names:
        return list(parsed.requests)
    missing = [n for n in names if not parsed.find(n)]
    if missing:
        available = ", ".join(r.name for r in parsed.requests if r.name) or "(none named)"
        click.echo(
            f"ERROR: Request '{missing[0]}' not found in {parsed.file_path}.\n"
            f"Available: {available}",
            err=True,
        )
        sys.exit(1)
    return [r for r in parsed.requests if r.name in names]
