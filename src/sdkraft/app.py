"""Typer application and CLI entry point for sdkraft.

Two commands are exposed:

* ``sdkraft generate SPEC`` -- parse an OpenAPI 3.x document and write a
  typed Python SDK (pydantic models, httpx operations, a client and,
  optionally, pytest tests).
* ``sdkraft validate DIRECTORY`` -- re-run the generated-code checks over
  the ``.py`` files of an existing SDK.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. :class:`~sdkraft.exceptions.SdkraftError` subclasses end
the process with their own ``exit_code``; anything else is written to a
crash log under the data directory.

See Also:
    :mod:`sdkraft.config`: Configuration precedence resolution.
    :mod:`sdkraft.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from sdkraft import __version__
from sdkraft.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="sdkraft",
    help="Generate typed Python SDKs from OpenAPI 3.0/3.1 specs.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"sdkraft {__version__}")
        raise typer.Exit()


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
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output and console logging."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~sdkraft.output.OutputManager` and stores
    the verbosity flag in ``ctx.obj`` for the sub-commands.
    """
    from sdkraft.output import OutputManager, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet, verbose=verbose))
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@app.command("generate")
def generate_command(
    ctx: typer.Context,
    spec: str = typer.Argument(
        ..., help="OpenAPI document: file path, http(s) URL, or '-' for stdin."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (YAML or JSON)."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output directory."
    ),
    package_name: Optional[str] = typer.Option(
        None, "--package", "-p", help="Name of the generated Python package."
    ),
    with_tests: Optional[bool] = typer.Option(
        None, "--with-tests/--no-tests", help="Generate pytest tests for every operation."
    ),
) -> None:
    """Generate a Python SDK from an OpenAPI document."""
    from sdkraft.config import resolve_config
    from sdkraft.generator import Generator
    from sdkraft.output import debug, info, print_data, success
    from sdkraft.parser import parse_document

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    config = resolve_config(
        config_path,
        output_dir=output_dir,
        package_name=package_name,
        with_tests=with_tests,
        verbose=True if verbose else None,
    )
    debug(f"Effective configuration: {config.model_dump_json(by_alias=True)}")

    document, findings = parse_document(spec)
    info(
        f"Generating {config.display_name} from {document.title} {document.version} "
        f"into {config.package_dir}"
    )

    result = Generator(config).generate(document, findings)

    for path in result.files:
        print_data(path)
    success(
        f"Generated {result.model_count} models, {result.operation_count} operations "
        f"and {result.test_count} tests in {result.output_dir}"
    )
    debug(f"Render cache: {result.cache_hits} hits, {result.cache_misses} misses")


@app.command("validate")
def validate_command(
    directory: Path = typer.Argument(
        ..., exists=True, file_okay=False, dir_okay=True, help="Generated package directory."
    ),
    package_name: Optional[str] = typer.Option(
        None, "--package", "-p", help="Package name to check (defaults to the directory name)."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (YAML or JSON)."
    ),
) -> None:
    """Check the Python files of a generated SDK."""
    from sdkraft.config import load_config
    from sdkraft.exceptions import FileSystemError, ValidationFailedError
    from sdkraft.generator import CodeValidator, ValidationReport
    from sdkraft.output import print_table, progress, success

    config = load_config(config_path)
    validator = CodeValidator(
        package_name or directory.resolve().name,
        config.code_style.max_param_length,
    )

    report = ValidationReport()
    files = sorted(directory.rglob("*.py"))
    for index, path in enumerate(files, start=1):
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise FileSystemError(f"Cannot read {path}: {exc}") from exc
        report.add(validator.validate(path.relative_to(directory).as_posix(), content))
        progress(f"validate: {index}/{len(files)}")

    if report:
        print_table(
            ["Category", "Path", "Problems"],
            [[f.category.value, f.path, "; ".join(f.messages)] for f in report],
            title="Validation findings",
        )
        raise ValidationFailedError(report.summary(), report)
    success(f"{len(files)} files passed validation")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from sdkraft.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``sdkraft`` console script.

    Unhandled :class:`~sdkraft.exceptions.SdkraftError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

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
        from sdkraft.exceptions import SdkraftError
        from sdkraft.output import error

        if isinstance(exc, SdkraftError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
