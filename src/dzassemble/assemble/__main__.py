"""CLI entry point for dzassemble."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from dzassemble.config import DEFAULT_PARALLEL_GROUPS

from .orchestrator import AssembleResult, run

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_header(
    event_dir: Path, tex_dir: Path, output_dir: Path, enable_lower_layers: bool
) -> None:
    """Print the CLI banner with processing parameters."""
    click.echo(click.style("DZI Layer Assembly", fg="cyan", bold=True))
    click.echo(click.style("=" * 40, fg="cyan"))
    click.echo(f"Descriptors: {event_dir}")
    click.echo(f"Tiles: {tex_dir}")
    click.echo(f"Output directory: {output_dir} (rebuilt)")
    if not enable_lower_layers:
        click.echo(click.style("Lower layers disabled: only layer_0 and layer_1", fg="yellow"))
    click.echo()


def _print_summary(result: AssembleResult) -> None:
    """Print the colored run summary."""
    click.echo()
    click.echo(click.style("=" * 40, fg="cyan"))

    parts = []
    if result.groups:
        parts.append(click.style(f"{len(result.groups)} group(s)", fg="green"))
        parts.append(click.style(f"{len(result.written)} layer(s) written", fg="green"))
    if result.skipped:
        parts.append(click.style(f"{len(result.skipped)} layer(s) skipped", fg="cyan"))

    summary = ", ".join(parts) if parts else "Nothing to assemble"
    click.echo(click.style("Completed: ", bold=True) + summary)


def _report_failure(err: Exception) -> None:
    click.echo(click.style(f"\nError: {err}", fg="red"), err=True)
    click.echo(
        "Ensure the --event-dir and --tex-dir paths exist and the descriptors are valid.",
        err=True,
    )
    click.echo(
        "e.g.: dzassemble --event-dir <event> --tex-dir <tex> "
        "--output-dir <dist> --enable-lower-layers <true|false>",
        err=True,
    )


@click.command()
@click.option(
    "-e",
    "--event-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory containing the .dzi descriptor files",
)
@click.option(
    "-t",
    "--tex-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory containing the tile images",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Output directory (removed and rebuilt on every run)",
)
@click.option(
    "--enable-lower-layers",
    type=click.BOOL,
    default="true",
    show_default=True,
    metavar="<true|false>",
    help="Also compose layers after layer_1 (half size and below)",
)
@click.option(
    "--parallel-groups",
    "-p",
    type=click.IntRange(min=1),
    default=DEFAULT_PARALLEL_GROUPS,
    help=f"Compose multiple descriptors in parallel (default: {DEFAULT_PARALLEL_GROUPS})",
)
@click.option(
    "--progress/--no-progress",
    default=False,
    help="Show a progress bar over descriptors",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    event_dir: Path,
    tex_dir: Path,
    output_dir: Path,
    enable_lower_layers: bool,
    parallel_groups: int,
    progress: bool,
    verbose: bool,
) -> None:
    """Reassemble every layer of every DZI descriptor into a PNG image.

    Each <name>.dzi in EVENT_DIR produces OUTPUT_DIR/<name>/layer_<i>.png.
    layer_1 is the original size, layer_0 twice that, and every layer after
    layer_1 halves the previous one.

    Examples:

        # Rebuild all layers
        python -m dzassemble -e ./event -t ./event/tex -o ./dist

        # Only layer_0 and layer_1
        python -m dzassemble -e ./event -t ./event/tex -o ./dist --enable-lower-layers false
    """
    _configure_logging(verbose)
    _print_header(event_dir, tex_dir, output_dir, enable_lower_layers)

    try:
        result = run(
            event_dir,
            tex_dir,
            output_dir,
            enable_lower_layers=enable_lower_layers,
            parallel_groups=parallel_groups,
            progress=progress,
        )
    except Exception as e:
        logger.debug("Run aborted", exc_info=True)
        _report_failure(e)
        sys.exit(1)

    _print_summary(result)


if __name__ == "__main__":
    main()
