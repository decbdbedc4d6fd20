"""CLI entry point for steptrace."""
from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from steptrace import __version__
from steptrace.core.store import DEFAULT_RESULTS_DIR, ResultStore
from steptrace.reporting.terminal import TerminalReporter
from steptrace.upload import ConfigError, UploadOrchestrator, load_settings


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class CliState:
    """Holds global CLI state."""

    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose


def _print_version(_: click.Context, __: click.Parameter, value: bool) -> None:
    if not value or click.get_current_context().resilient_parsing:
        return
    click.echo(f"steptrace {__version__}")
    raise click.exceptions.Exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show the steptrace version and exit.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Top level CLI group for steptrace."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(verbose=verbose)


@cli.command()
@click.option(
    "--results-dir",
    type=click.Path(file_okay=False),
    default=DEFAULT_RESULTS_DIR,
    show_default=True,
    help="Directory holding per-test result files.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML upload configuration file.",
)
@click.option("--no-upload", is_flag=True, help="Only write the manual import bundle.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")
@click.pass_obj
def upload(
    state: CliState,
    results_dir: str,
    config_path: Optional[str],
    no_upload: bool,
    no_color: bool,
) -> None:
    """Bundle and upload results left behind by a test session."""

    load_dotenv(Path.cwd() / ".env")
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if no_upload:
        settings = replace(settings, enabled=False)
    store = ResultStore(Path(results_dir))
    report = UploadOrchestrator(store, settings).run()
    TerminalReporter(use_color=not no_color).render_upload(report)
    exit_code = 0 if report is None or report.ok else 1
    raise click.exceptions.Exit(exit_code)


@cli.command()
@click.option(
    "--results-dir",
    type=click.Path(file_okay=False),
    default=DEFAULT_RESULTS_DIR,
    show_default=True,
    help="Directory holding per-test result files.",
)
@click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")
@click.pass_obj
def show(state: CliState, results_dir: str, no_color: bool) -> None:
    """List persisted results without consuming them."""

    results = ResultStore(Path(results_dir)).collect()
    TerminalReporter(use_color=not no_color).render_results(results)


def main(argv: Optional[list[str]] = None) -> int:
    """Program entry point for console_scripts shim."""

    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=argv, prog_name="steptrace", standalone_mode=True)
    except click.ClickException as err:  # pragma: no cover - click handles display
        err.show()
        return err.exit_code
    except SystemExit as exc:  # click may raise exit code
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
