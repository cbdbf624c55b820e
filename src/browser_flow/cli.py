"""Command line interface for browser-flow."""

from __future__ import annotations

import importlib
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from .config import BrowserEngine, load_settings
from .core.computation import Computation
from .core.runner import run_and_raise
from .errors import FlowError
from .factory import build_session
from .log import Log
from .reporting import ConsoleLogSink, report_failure

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Browser Flow entry point")


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("browser-flow"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


def _report_once(error: FlowError, log: Log) -> None:
    # The log was already streamed to the console while the flow ran.
    report_failure(error)


def load_flow(target: str) -> Computation[Any]:
    """Import ``module:attribute`` and return the computation it names.

    The attribute may be a computation or a function of no arguments that
    builds one.
    """

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise typer.BadParameter(f"Expected MODULE:ATTRIBUTE, got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"Cannot import {module_name}: {exc}") from exc
    try:
        found = getattr(module, attribute)
    except AttributeError as exc:
        raise typer.BadParameter(f"{module_name} has no attribute {attribute}") from exc
    if not isinstance(found, Computation) and callable(found):
        found = found()
    if not isinstance(found, Computation):
        raise typer.BadParameter(f"{target} is not a flow")
    return found


@app.command()
def run(
    target: Annotated[
        str,
        typer.Argument(help="Flow to run, as MODULE:ATTRIBUTE."),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            help="Path to an .env file with default configuration values.",
        ),
    ] = None,
    headless: Annotated[
        Optional[bool],
        typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
    ] = None,
    engine: Annotated[
        Optional[BrowserEngine],
        typer.Option("--engine", help="Browser engine to launch."),
    ] = None,
    wait: Annotated[
        Optional[float],
        typer.Option("--wait", help="Default total wait in seconds."),
    ] = None,
    interval: Annotated[
        Optional[float],
        typer.Option("--interval", help="Default polling interval in seconds."),
    ] = None,
) -> None:
    """Run a flow against a fresh browser session."""

    computation = load_flow(target)

    overrides: dict[str, Any] = {}
    if headless is not None or engine is not None:
        overrides.setdefault("browser", {})
        if headless is not None:
            overrides["browser"]["headless"] = headless
        if engine is not None:
            overrides["browser"]["engine"] = engine.value
    if wait is not None:
        overrides["wait"] = wait
    if interval is not None:
        overrides["interval"] = interval

    settings = load_settings(
        config_path, env_file=env_file, failure_action=_report_once, **overrides
    )
    detach = ConsoleLogSink().attach(settings.log_stream)
    session = build_session(settings.browser)
    session.start()
    try:
        run_and_raise(computation, session, settings)
    except FlowError as exc:
        raise typer.Exit(code=1) from exc
    finally:
        detach()
        session.stop()
    typer.echo("Flow completed successfully.")


if __name__ == "__main__":
    app()
