"""Typer application and CLI entry point for specnorm.

The CLI is a thin shell around :mod:`specnorm.normalizer`:

* ``specnorm normalize SOURCE`` -- load a document from a file, URL or
  stdin (``-``), normalize it and print the canonical JSON (or a table of
  endpoints with ``--endpoints``).
* ``specnorm detect SOURCE`` -- print the detected spec type.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It maps :class:`~specnorm.exceptions.SpecnormError`
subclasses to their exit codes, so shell callers can tell failure kinds
apart.

See Also:
    :mod:`specnorm.config`: Configuration resolution used by ``normalize``.
    :mod:`specnorm.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, NoReturn, Optional

import typer

from specnorm import __version__
from specnorm.exceptions import SpecnormError
from specnorm.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="specnorm",
    help="Normalize OpenAPI 3.x and Swagger 2.0 documents into a canonical API model.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specnorm {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging on stderr."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Output file path."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~specnorm.output.OutputManager` from
    CLI flags and routes the package loggers through it.
    """
    from specnorm.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )
    _configure_logging(verbose=verbose, quiet=quiet)


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Send library log records through the output manager."""
    from specnorm.output import OutputLogHandler

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    package_logger = logging.getLogger("specnorm")
    package_logger.setLevel(level)
    if not any(isinstance(h, OutputLogHandler) for h in package_logger.handlers):
        package_logger.addHandler(OutputLogHandler())


@app.command("normalize")
def normalize_command(
    source: str = typer.Argument(..., help="File path, http(s) URL, or '-' for stdin."),
    spec_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Declared spec type (openapi, swagger, graphql). Detected when omitted.",
    ),
    endpoints_only: bool = typer.Option(
        False, "--endpoints", "-e", help="List endpoints instead of the full document."
    ),
    cache: Optional[bool] = typer.Option(
        None, "--cache/--no-cache", help="Cache fetched external documents on disk."
    ),
) -> None:
    """Normalize an API description and print the result.

    Example::

        specnorm normalize petstore.yaml
        curl -s https://example.com/openapi.json | specnorm --json normalize - -e
    """
    from specnorm.config import load_config
    from specnorm.normalizer import parse_spec
    from specnorm.output import get_output
    from specnorm.parser.loader import detect_spec_type, load_document

    overrides: dict[str, Any] = {}
    if cache is not None:
        overrides["cache"] = {"enabled": cache}

    try:
        config = load_config(overrides)
        document = load_document(source)
        declared = spec_type or detect_spec_type(document).value
        origin = None if source == "-" else source
        parsed = parse_spec(document, declared, origin=origin, config=config)
    except SpecnormError as exc:
        _fail(exc)

    output = get_output()
    if endpoints_only:
        rows = [
            [endpoint.id, endpoint.method.value, endpoint.path, endpoint.summary or ""]
            for endpoint in parsed.endpoints
        ]
        output.print_table(["ID", "Method", "Path", "Summary"], rows, title="Endpoints")
    else:
        output.print_document(parsed.to_document())

    output.success(
        f"Normalized {len(parsed.endpoints)} endpoint(s), "
        f"{len(parsed.models)} model(s), {len(parsed.auth_methods)} auth method(s)"
    )


@app.command("detect")
def detect_command(
    source: str = typer.Argument(..., help="File path, http(s) URL, or '-' for stdin."),
) -> None:
    """Print the spec type of a document (openapi, swagger or graphql)."""
    from specnorm.output import get_output
    from specnorm.parser.loader import detect_spec_type, load_document

    try:
        detected = detect_spec_type(load_document(source))
    except SpecnormError as exc:
        _fail(exc)
    get_output().print_data(detected.value)


def _fail(exc: SpecnormError) -> NoReturn:
    """Report *exc* on stderr and exit with its exit code."""
    from specnorm.output import get_output

    get_output().error(str(exc))
    raise typer.Exit(code=exc.exit_code) from None


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``specnorm`` console script.

    :class:`~specnorm.exceptions.SpecnormError` instances cause a clean exit
    with the error's ``exit_code``.  Any other exception is reported and
    exits with :data:`~specnorm.exit_codes.EXIT_GENERIC_FAILURE`.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from specnorm.output import get_output

        output = get_output()
        if isinstance(exc, SpecnormError):
            output.error(str(exc))
            sys.exit(exc.exit_code)
        logging.getLogger(__name__).debug("Unhandled error", exc_info=True)
        output.error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
