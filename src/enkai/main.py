"""CLI entrypoint for enkai."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from enkai import __version__
from enkai.analysis.analyzer import AnalysisError
from enkai.analysis.chunked import ChunkAnalysisError
from enkai.analysis.controllers import AnalysisCliController, AnalyzeCommand
from enkai.analysis.models import AnalyzeMode
from enkai.config import LOG_LEVELS, split_csv
from enkai.credentials import MissingCredentialError
from enkai.orchestrator.controllers import (
    ApiSetCommand,
    CredentialCliController,
    DispatchOptions,
    FromJsonCommand,
    FromTemplateCommand,
    GenerationCliController,
)
from enkai.orchestrator.tasks import TaskSourceError

click.rich_click.USE_MARKDOWN = True


def _progress(message: str) -> None:
    click.echo(message, err=True)


GENERATION_CONTROLLER = GenerationCliController(on_progress=_progress)
ANALYSIS_CONTROLLER = AnalysisCliController(on_progress=_progress)
CREDENTIAL_CONTROLLER = CredentialCliController()


@click.group()
@click.version_option(version=__version__, prog_name="enkai")
@click.option(
    "-c",
    "--concurrency",
    type=int,
    default=None,
    help="Maximum tasks in flight. Values <= 0 fall back to 5.",
)
@click.option("--no-compete", is_flag=True, help="One call per task instead of a competition.")
@click.option("--models", default="", help="Comma-separated models to compete, e.g. `a,b`.")
@click.option("--pro", is_flag=True, help="Use the pro model.")
@click.option("--api-key", default=None, help="Gemini API key for this run.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    envvar="ENKAI_LOG_LEVEL",
    show_default=True,
    help="Logging level.",
)
@click.pass_context
def enkai(  # noqa: PLR0913
    ctx: click.Context,
    concurrency: int | None,
    no_compete: bool,
    models: str,
    pro: bool,
    api_key: str | None,
    log_level: str,
) -> None:
    """Parallel multi-variant code generation with Gemini.

    Every task is generated by several variants concurrently and the
    best-scoring result is written to the task's output path.
    """

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = DispatchOptions(
        concurrency=concurrency,
        no_compete=no_compete,
        models=split_csv(models),
        pro=pro,
        api_key=api_key,
    )


@enkai.command("from-json")
@click.argument("json_string")
@click.pass_obj
def from_json(options: DispatchOptions, json_string: str) -> None:
    """Run tasks given as a JSON array of `{fileName, outputPath, prompt}` objects."""

    with _setup_errors():
        lines = GENERATION_CONTROLLER.from_json(
            FromJsonCommand(options=options, json_text=json_string),
        )
    _emit_lines(lines)


@enkai.command("from-template")
@click.argument("source")
@click.option(
    "--extract-code",
    is_flag=True,
    help="Write only the first fenced code block of the winning output.",
)
@click.pass_obj
def from_template(options: DispatchOptions, source: str, extract_code: bool) -> None:
    """Run a bundled preset by name, or tasks from a `.json` file."""

    with _setup_errors():
        lines = GENERATION_CONTROLLER.from_template(
            FromTemplateCommand(options=options, source=source, extract_code=extract_code),
        )
    _emit_lines(lines)


@enkai.command("list")
def list_command() -> None:
    """List bundled presets."""

    with _setup_errors():
        lines = GENERATION_CONTROLLER.list_presets()
    _emit_lines(lines)


@enkai.command("analyze")
@click.argument("query", required=False, default="")
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in AnalyzeMode]),
    default=None,
    help="Analysis mode. A query without a mode runs a review.",
)
@click.option("-v", "--verbose", "verbosity", count=True, help="Include more lines per file.")
@click.option("--include", "include_pattern", default="", help="Only files matching this glob.")
@click.option("--exclude", "exclude_pattern", default="", help="Skip files matching this glob.")
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also save the report to this file.",
)
@click.pass_obj
def analyze(  # noqa: PLR0913
    options: DispatchOptions,
    query: str,
    paths: tuple[Path, ...],
    mode: str | None,
    verbosity: int,
    include_pattern: str,
    exclude_pattern: str,
    output_file: Path | None,
) -> None:
    """Analyze a codebase. Review mode splits files into parallel chunks."""

    with _setup_errors():
        lines = ANALYSIS_CONTROLLER.analyze(
            AnalyzeCommand(
                query=query,
                paths=paths,
                mode=mode,
                verbosity=verbosity,
                include_pattern=include_pattern,
                exclude_pattern=exclude_pattern,
                output_file=output_file,
                concurrency=options.concurrency,
                pro=options.pro,
                api_key=options.api_key,
            ),
        )
    _emit_lines(lines)


@enkai.group()
def api() -> None:
    """Manage the stored Gemini API key."""


@api.command("set")
@click.argument("api_key")
def api_set(api_key: str) -> None:
    """Store the API key in the config file."""

    with _setup_errors():
        lines = CREDENTIAL_CONTROLLER.set_key(ApiSetCommand(api_key=api_key))
    _emit_lines(lines)


@api.command("delete")
def api_delete() -> None:
    """Remove the stored API key."""

    _emit_lines(CREDENTIAL_CONTROLLER.delete_key())


@api.command("status")
@click.pass_obj
def api_status(options: DispatchOptions) -> None:
    """Show which API key would be used."""

    _emit_lines(CREDENTIAL_CONTROLLER.status(options.api_key))


@contextmanager
def _setup_errors() -> Iterator[None]:
    try:
        yield
    except (
        MissingCredentialError,
        TaskSourceError,
        AnalysisError,
        ChunkAnalysisError,
        OSError,
        ValueError,
    ) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":
    enkai()
