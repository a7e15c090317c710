"""gravapi pipeline - compose the HTTP call, run it, select from the response."""

import logging
import re
import tempfile
from pathlib import Path
from urllib.parse import urlencode

import click

from gravapi.core import Configuration, merge_config, validate_config
from gravapi.errors import GravapiError, LoginFailedError, NotConfiguredError
from gravapi.executor import CommandRunner

logger = logging.getLogger(__name__)

HTTP_PROGRAM = "httpstat"
JQ_PROGRAM = "jq"
CAT_PROGRAM = "cat"

RESPONSE_FILENAME = "gravity-api-response"
# Shared by every invocation; two concurrent runs overwrite each other.
RESPONSE_FILE = Path(tempfile.gettempdir()) / RESPONSE_FILENAME

LOGIN_RESOURCE = "/login"
TOKEN_SELECTOR = ".access_token"

_STATUS_LINE_RE = re.compile(r"HTTP/\d(?:\.\d)?\s+(\d{3})\b")


class RequestDescriptor:
    """Everything needed for one API call. Never persisted."""

    def __init__(
        self,
        verb: str = "GET",
        resource: str = "",
        query_string: str = "",
        body: str = "",
        selector: str = ".",
        token: str = "",
        show_stat: bool = True,
        show_response: bool = True,
        verbose: bool = False,
        content_type: str | None = "application/json",
    ):
        self.verb = verb.upper()
        self.resource = resource or ""
        self.query_string = query_string or ""
        self.body = body or ""
        self.content_type = content_type
        self.selector = selector or "."
        self.token = token or ""
        self.show_stat = show_stat
        self.show_response = show_response
        self.verbose = verbose


def build_url(base_url: str, resource: str, query_string: str = "") -> str:
    return f"{base_url}{resource}{query_string}"


def build_http_args(
    request: RequestDescriptor,
    base_url: str,
    response_file: Path | None = None,
) -> list[str]:
    """Argument list for the HTTP program; the URL is always last."""
    target = response_file or RESPONSE_FILE
    args = ["-o", str(target)]
    if request.token:
        args += ["-H", f"authorization: Bearer {request.token}"]
    if request.verb != "GET":
        args += ["-X", request.verb]
    if request.body:
        if request.content_type:
            args += ["-H", f"Content-Type: {request.content_type}"]
        args += ["-d", request.body]
    args.append(build_url(base_url, request.resource, request.query_string))
    return args


def run_http(runner: CommandRunner, request: RequestDescriptor, base_url: str) -> str:
    """Execute the HTTP program. Any failure is fatal."""
    args = build_http_args(request, base_url)
    logger.debug("%s %s", request.verb, args[-1])
    return runner.execute(HTTP_PROGRAM, args, verbose=request.verbose)


def run_selector(
    runner: CommandRunner,
    selector: str,
    verbose: bool = False,
    response_file: Path | None = None,
) -> str | None:
    """Pipe the response artifact through jq.

    Failure is reported but not raised; None means no usable output.
    """
    target = response_file or RESPONSE_FILE
    try:
        return runner.pipe(
            [CAT_PROGRAM, str(target)],
            [JQ_PROGRAM, selector],
            verbose=verbose,
        )
    except GravapiError as e:
        logger.debug("Selector %r failed: %s", selector, e)
        click.echo(f"ERROR: {e}")
        return None


def run_request(
    runner: CommandRunner,
    config: Configuration,
    request: RequestDescriptor,
) -> str | None:
    """Validate, call the API, and print the report and selected output.

    Returns the selector output, or None when selection failed.
    """
    validate_config(config)
    if not request.token:
        request.token = config.token

    report = run_http(runner, request, config.url)
    if request.show_stat:
        click.echo(report)

    selected = run_selector(runner, request.selector, verbose=request.verbose)
    if request.show_response and selected is not None:
        click.echo(selected)
    return selected


# ── Login ────────────────────────────────────────────────────────────────


def parse_status_code(report: str) -> int | None:
    """Status code from the last 'HTTP/x.y NNN' line of a report.

    Interim responses such as 100 Continue come before the final one.
    """
    codes = _STATUS_LINE_RE.findall(report or "")
    if codes:
        return int(codes[-1])
    return None


def is_login_success(report: str) -> bool:
    status = parse_status_code(report)
    if status is not None:
        return status == 200
    return "200 OK" in (report or "")


def clean_token(raw: str) -> str:
    """Strip jq quoting and line breaks from a selected string."""
    return raw.replace('"', "").replace("\r", "").replace("\n", "")


def login(
    runner: CommandRunner,
    config: Configuration,
    username: str,
    password: str,
    verbose: bool = False,
) -> Configuration:
    """Exchange credentials for a token.

    Returns the updated Configuration; saving it is up to the caller, so
    a failed login never touches the stored file.
    """
    if not config.url:
        raise NotConfiguredError("Please run command 'configure' and try again")

    body = urlencode(
        {"grant_type": "password", "username": username, "password": password},
    )
    request = RequestDescriptor(
        verb="POST",
        resource=LOGIN_RESOURCE,
        body=body,
        verbose=verbose,
        content_type=None,
    )
    report = run_http(runner, request, config.url)
    click.echo(report)

    if not is_login_success(report):
        raise LoginFailedError("Unable to login")

    selected = run_selector(runner, TOKEN_SELECTOR, verbose=verbose)
    token = clean_token(selected or "")
    if not token or token == "null":
        raise LoginFailedError("Unable to login: no access_token in response")
    return merge_config(config, token=token)
