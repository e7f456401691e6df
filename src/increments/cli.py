"""CLI root — entry point for all increments subcommands.

Entry point:
  increments            (installed console script)

Command surface:
  increments validate     validate the increment chain and print accepted files
  increments config show  print resolved configuration
"""

from pathlib import Path

import typer

from increments import __version__
from increments.logging import get_logger

app = typer.Typer(
    name="increments",
    help="Validate chains of incremental update files.",
    no_args_is_help=True,
)

_log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Global callback — runs before every subcommand
# ---------------------------------------------------------------------------


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"increments {__version__}")
        raise typer.Exit()


@app.callback()
def _main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Print version and exit.",
    ),
) -> None:
    """Validate chains of incremental update files."""
    from increments.logging import configure_logging

    configure_logging()


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@app.command("validate")
def validate(
    directory: str = typer.Option(
        "",
        "--dir",
        "-d",
        help="Increments directory.  Empty = paths.increments_dir.",
    ),
    baseline: str = typer.Option(
        "",
        "--baseline",
        "-b",
        help="Token the first file must follow.  Empty = saved baseline, then chain.baseline.",
    ),
    no_baseline: bool = typer.Option(
        False,
        "--no-baseline",
        help="Accept whatever file comes first; ignore any saved baseline.",
    ),
    policy: str = typer.Option(
        "",
        "--policy",
        help="'skip' rejects mismatching files, 'strict' halts on them.  Empty = chain.policy.",
    ),
    save: bool = typer.Option(
        False,
        "--save",
        help="Store the final token as the new baseline if the run completes.",
    ),
) -> None:
    """Validate the increment chain and print the accepted files in order.

    Reads only the two header lines of each file.  Accepted filenames go to
    stdout, one per line; the summary goes to stderr.

    Exit codes: 0 = run completed, 1 = run halted on an unreadable or
    malformed file (or a chain break under the strict policy), 2 = bad
    options or a --dir that does not exist.
    """
    from increments.baseline import baseline_path, resolve_baseline, write_baseline
    from increments.chain import ChainValidator
    from increments.config import get_settings
    from increments.discovery import list_increment_files

    if policy not in ("", "skip", "strict"):
        typer.echo(f"Error: --policy must be 'skip' or 'strict', got {policy!r}", err=True)
        raise typer.Exit(2)
    if baseline and no_baseline:
        typer.echo("Error: --baseline and --no-baseline are mutually exclusive", err=True)
        raise typer.Exit(2)

    if directory and not Path(directory).is_dir():
        typer.echo(f"Error: --dir {directory!r} is not a directory", err=True)
        raise typer.Exit(2)

    settings = get_settings()
    state_file = baseline_path(settings.paths.state_dir)

    if no_baseline:
        start: str | None = None
    elif baseline:
        start = baseline
    else:
        start = resolve_baseline(state_file, settings.chain.baseline)

    validator = ChainValidator.from_settings(
        settings,
        Path(directory) if directory else None,
        policy=policy or None,  # type: ignore[arg-type]
    )
    if not validator.directory.is_dir():
        _log.warning("increments directory missing", directory=str(validator.directory))
    files = list_increment_files(validator.directory)
    _log.info(
        "validation started",
        directory=str(validator.directory),
        files=len(files),
        baseline=start,
        policy=validator.policy,
    )

    result = validator.run(files, start)

    for name in result.accepted:
        typer.echo(name)

    typer.echo(
        f"\n{len(result.accepted)} accepted, {len(result.rejected)} rejected, "
        f"{len(result.skipped)} skipped — latest token: {result.latest_token or '(none)'}",
        err=True,
    )

    if result.halt is not None:
        typer.echo(
            f"Error: halted at {result.halt.filename} ({result.halt.kind}): {result.halt.reason}",
            err=True,
        )
        raise typer.Exit(1)

    if save and result.latest_token is not None and result.latest_token != start:
        write_baseline(state_file, result.latest_token)
        _log.info("baseline saved", path=str(state_file), token=result.latest_token)


# ---------------------------------------------------------------------------
# config subcommands
# ---------------------------------------------------------------------------

_config_app = typer.Typer(help="Inspect resolved configuration.")
app.add_typer(_config_app, name="config")


@_config_app.command("show")
def config_show() -> None:
    """Print the fully-resolved configuration and exit.

    Shows which config file was loaded and the final value of every setting
    after INCREMENTS_* environment overrides are applied.
    """
    from increments.config import _config_file, get_settings

    settings = get_settings()

    typer.echo(f"\n  config : {_config_file()}\n")

    for section_name, section in settings.model_dump().items():
        typer.echo(f"  [{section_name}]")
        width = max(len(k) for k in section)
        for key, val in section.items():
            typer.echo(f"  {key.ljust(width)} = {val}")
        typer.echo()
