"""Typer application and CLI entry point for specir.

Two commands sit on top of :func:`~specir.compiler.compile_spec`:

* ``specir compile SPEC`` -- print the compiled IR as JSON (or write it
  with ``-o``).
* ``specir operations SPEC`` -- list the compiled operations as a table.

Both accept ``--config`` pointing at a compiler options file. Every
:class:`~specir.exceptions.SpecirError` is reported on stderr and turned
into its exit code. Library log records are shown through Rich on stderr:
warnings by default, everything with ``--verbose``.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import typer
from rich.logging import RichHandler

from specir import __version__
from specir.exceptions import SpecirError


app = typer.Typer(
    name="specir",
    help="Compile OpenAPI 3.x documents into a code-generation IR.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specir {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, no_color: bool = False) -> None:
    """Route ``specir`` log records to stderr through a :class:`RichHandler`.

    Replaces any handler installed by an earlier call.
    """
    from specir.output import get_output

    logger = logging.getLogger("specir")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=get_output().stderr_console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=not no_color,
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug log records."
    ),
) -> None:
    """Install the output manager and logging before every command."""
    from specir.output import OutputManager, set_output

    set_output(OutputManager(no_color=no_color))
    configure_logging(verbose, no_color)

    ctx.ensure_object(dict)
    ctx.obj["no_color"] = no_color
    ctx.obj["verbose"] = verbose


def _compile(spec: str, config: Optional[str]):  # noqa: ANN202
    """Load *spec* and the options file, and compile.

    Raises:
        typer.Exit: With the error's exit code on any :class:`SpecirError`.
    """
    from specir.compiler import compile_spec
    from specir.config import load_options
    from specir.parser import load_spec, validate_openapi_version

    try:
        options = load_options(config)
        document = load_spec(spec)
        validate_openapi_version(document)
        return compile_spec(document, options)
    except SpecirError as exc:
        _fail(exc)


def _fail(exc: SpecirError) -> None:
    """Report *exc* on stderr and exit with its code."""
    from specir.output import error

    error(str(exc))
    raise typer.Exit(code=exc.exit_code) from None


def _table_format(json_output: bool, plain_output: bool):  # noqa: ANN202
    from specir.exceptions import InvalidUsageError
    from specir.output import OutputFormat

    if json_output and plain_output:
        raise InvalidUsageError("--json and --plain cannot be used together")
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.command("compile")
def compile_command(
    ctx: typer.Context,
    spec: str = typer.Argument(..., help="OpenAPI document path, or '-' for stdin."),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Compiler options file (YAML or JSON)."
    ),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the IR to this file instead of stdout."
    ),
) -> None:
    """Compile SPEC and print the IR as JSON.

    Example::

        specir compile petstore.yaml
        specir compile petstore.yaml --config options.yaml -o ir.json
    """
    from specir.output import OutputFormat, OutputManager, get_output, set_output, success

    compiled = _compile(spec, config)

    no_color = (ctx.obj or {}).get("no_color", False)
    if output_file:
        set_output(OutputManager(format=OutputFormat.JSON, no_color=no_color, output_file=output_file))
    get_output().print_json(compiled.model_dump_json(by_alias=True, indent=2))
    if output_file:
        success(
            f"Wrote {len(compiled.operations)} operations and "
            f"{len(compiled.types)} types to {output_file}"
        )


@app.command("operations")
def operations_command(
    ctx: typer.Context,
    spec: str = typer.Argument(..., help="OpenAPI document path, or '-' for stdin."),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Compiler options file (YAML or JSON)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
) -> None:
    """List the operations compiled from SPEC.

    Example::

        specir operations petstore.yaml --plain
    """
    from specir.exceptions import InvalidUsageError
    from specir.output import OutputManager, set_output

    try:
        fmt = _table_format(json_output, plain_output)
    except InvalidUsageError as exc:
        _fail(exc)

    compiled = _compile(spec, config)

    output = OutputManager(format=fmt, no_color=(ctx.obj or {}).get("no_color", False))
    set_output(output)

    headers = ["Operation", "Method", "Path", "Bodies"]
    rows = [
        [
            op.operation_id,
            op.method.value,
            op.path,
            ", ".join(body.content_type for body in op.bodies) or "-",
        ]
        for op in compiled.operations
    ]
    output.print_table(headers, rows, title=f"Operations ({len(rows)})")


def main() -> None:
    """CLI entry point invoked by the ``specir`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
