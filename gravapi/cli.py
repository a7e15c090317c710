"""gravapi CLI - authenticated API calls with timing stats and jq selectors."""

import logging

import click

from gravapi import core, pipeline
from gravapi.errors import GravapiError
from gravapi.executor import CommandRunner, SubprocessRunner

TOOL_HELP = """\
gravapi - A CLI tool to interact with Gravity APIs.

Issues requests against one configured API, shows the timing report from
httpstat and prints the part of the JSON response picked by a jq selector.

\b
SETUP
─────
  gravapi configure --url https://api.example.com
  gravapi login -u alice -p secret        # stores the access token
  gravapi configure show

\b
REQUESTS
────────
  gravapi get -r /items -s '.count'
  gravapi get -r /items -f params.json    # JSON object -> ?key=value&...
  gravapi post -r /items -d '{"name": "x"}'
  gravapi put -r /items/1 -f item.json    # file is the whole body
  gravapi patch -r /items/1 -d '{"name": "y"}'
  gravapi delete -r /items/1

  --data and --file cannot be combined. --no-stat hides the httpstat
  report and --no-response hides the selected output.

\b
FILES
─────
  ~/.gravity-api.yaml          url and token
  $TMPDIR/gravity-api-response body of the last response

  The response file is shared: do not run two gravapi commands at once.

\b
REQUIREMENTS
────────────
  httpstat and jq must be on PATH.
"""


class GravapiGroup(click.Group):
    """Prints gravapi errors as 'ERROR: ...' and exits non-zero."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except GravapiError as e:
            click.echo(f"ERROR: {e.message}")
            ctx.exit(e.exit_code)


def _get_runner(ctx: click.Context) -> CommandRunner:
    runner = ctx.obj.get("runner")
    if runner is None:
        runner = SubprocessRunner()
        ctx.obj["runner"] = runner
    return runner


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group(
    cls=GravapiGroup,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.option("--verbose", is_flag=True, default=False, help="Verbose mode.")
@click.pass_context
def main(ctx, verbose):
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# ── configure ────────────────────────────────────────────────────────────


@main.group(invoke_without_command=True)
@click.option("-u", "--url", default="", help="URL to the API.")
@click.option("-t", "--token", default="", help="Optional, token to make API calls.")
@click.pass_context
def configure(ctx, url, token):
    """Configure API's URL."""
    if ctx.invoked_subcommand is not None:
        return
    if not url and not token:
        raise GravapiError("No parameters are specified. See --help for options")

    existing = core.load_config()
    config = core.merge_config(existing, url=url, token=token)
    path = core.save_config(config)

    if existing is None:
        click.echo(f"Configuration file {path} has been created.")
    else:
        click.echo(f"Configuration file {path} has been updated.")


@configure.command()
def show():
    """Show the current configuration."""
    config = core.require_config()
    click.echo(f"url: {config.url}")
    click.echo(f"token: {config.token}")


# ── login ────────────────────────────────────────────────────────────────


@main.command()
@click.option("-u", "--username", default="", help="Username of API.")
@click.option("-p", "--password", default="", help="Password of login of API.")
@click.pass_context
def login(ctx, username, password):
    """Log onto the API and store the access token."""
    if not username:
        raise GravapiError("Parameter --username must be specified")
    if not password:
        raise GravapiError("Parameter --password must be specified")

    config = core.require_config()
    updated = pipeline.login(
        _get_runner(ctx),
        config,
        username,
        password,
        verbose=ctx.obj["verbose"],
    )
    path = core.save_config(updated)
    click.echo(f"Configuration file {path} has been updated.")


# ── requests ─────────────────────────────────────────────────────────────


def _request_options(with_data: bool):
    """Options shared by get/post/put/patch/delete."""

    def decorator(f):
        options = [
            click.option("-r", "--resource", default="", help="URI to the resource API."),
            click.option(
                "-s",
                "--selector",
                default=".",
                show_default=True,
                help="jq selector to the json response.",
            ),
        ]
        if with_data:
            options += [
                click.option(
                    "-d",
                    "--data",
                    default="",
                    help="JSON data (this cannot be used with parameter --file).",
                ),
                click.option(
                    "-f",
                    "--file",
                    "file",
                    default="",
                    help="JSON data (this cannot be used with parameter --data).",
                ),
            ]
        else:
            options.append(
                click.option(
                    "-f",
                    "--file",
                    "file",
                    default="",
                    help="JSON data to be included in query string.",
                ),
            )
        options += [
            click.option(
                "--no-stat",
                is_flag=True,
                default=False,
                help="Do not print the httpstat report.",
            ),
            click.option(
                "--no-response",
                is_flag=True,
                default=False,
                help="Do not print the selected response.",
            ),
        ]
        for option in reversed(options):
            f = option(f)
        return f

    return decorator


def _load_validated_config() -> core.Configuration:
    config = core.require_config()
    core.validate_config(config)
    return config


def _issue(
    ctx,
    config,
    verb,
    resource,
    selector,
    no_stat,
    no_response,
    query_string="",
    body="",
):
    request = pipeline.RequestDescriptor(
        verb=verb,
        resource=resource,
        query_string=query_string,
        body=body,
        selector=selector,
        token=config.token,
        show_stat=not no_stat,
        show_response=not no_response,
        verbose=ctx.obj["verbose"],
    )
    pipeline.run_request(_get_runner(ctx), config, request)


def _cmd_query(ctx, verb, resource, selector, file, no_stat, no_response):
    """GET/DELETE: an optional parameter file becomes the query string."""
    config = _load_validated_config()
    query_string = core.query_string_from_file(file) if file else ""
    _issue(
        ctx,
        config,
        verb,
        resource,
        selector,
        no_stat,
        no_response,
        query_string=query_string,
    )


def _cmd_body(ctx, verb, resource, selector, data, file, no_stat, no_response):
    """POST/PUT/PATCH: inline --data or --file is the request body."""
    core.check_exclusive(data, file)
    config = _load_validated_config()
    body = core.resolve_body(data, file)
    _issue(ctx, config, verb, resource, selector, no_stat, no_response, body=body)


@main.command()
@_request_options(with_data=False)
@click.pass_context
def get(ctx, **kwargs):
    """Retrieve data from API."""
    _cmd_query(ctx, "GET", **kwargs)


@main.command()
@_request_options(with_data=False)
@click.pass_context
def delete(ctx, **kwargs):
    """Delete data from API."""
    _cmd_query(ctx, "DELETE", **kwargs)


@main.command()
@_request_options(with_data=True)
@click.pass_context
def post(ctx, **kwargs):
    """Create resource via API."""
    _cmd_body(ctx, "POST", **kwargs)


@main.command()
@_request_options(with_data=True)
@click.pass_context
def put(ctx, **kwargs):
    """Modify data via API."""
    _cmd_body(ctx, "PUT", **kwargs)


@main.command()
@_request_options(with_data=True)
@click.pass_context
def patch(ctx, **kwargs):
    """Patch data via API."""
    _cmd_body(ctx, "PATCH", **kwargs)
