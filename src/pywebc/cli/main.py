"""Main CLI entry point."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

import rich_click as click
from rich.console import Console
from rich.logging import RichHandler

from pywebc import __version__
from pywebc.config import WebCConfig, load_data_file
from pywebc.exceptions import WebCError

console = Console()
err_console = Console(stderr=True)

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_HELPTEXT_FIRST = True
click.rich_click.STYLE_COMMANDS_TABLE_SHOW_LINES = False
click.rich_click.STYLE_COMMANDS_TABLE_PAD_EDGE = False
click.rich_click.STYLE_COMMANDS_TABLE_BOX = None
click.rich_click.STYLE_OPTIONS_TABLE_BOX = None
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running 'pywebc --help' for more information."

click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_OPTION = "cyan"
click.rich_click.STYLE_SWITCH = "cyan"
click.rich_click.STYLE_METAVAR = "dim white"
click.rich_click.STYLE_USAGE_COMMAND = "cyan"
click.rich_click.STYLE_USAGE = "dim"

click.rich_click.COMMAND_GROUPS = {
    "pywebc": [
        {
            "name": "Commands",
            "commands": ["build", "components"],
        }
    ]
}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=True)],
        force=True,
    )


def _relative_input(input_file: str, config: WebCConfig) -> str:
    resolved = Path(input_file).resolve()
    try:
        return resolved.relative_to(config.project_root).as_posix()
    except ValueError:
        raise click.BadParameter(
            f"{input_file} is not inside the project root {config.project_root}",
            param_hint="INPUT",
        )


component_option = click.option(
    "--components",
    "-c",
    "components",
    multiple=True,
    help="Glob of component files to make available by file name (repeatable).",
)


@click.group(
    help=f"""
[bold white on cyan] pywebc [/] [bold cyan]v{__version__}[/] Single file HTML components.

Run [bold cyan]pywebc build page.webc -c "components/**/*.webc"[/] to compile a page.
"""
)
@click.version_option(__version__)
def cli() -> None:
    pass


@cli.command()
@click.argument("input_file", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@component_option
@click.option("--data", "-d", "data_file", default=None, type=click.Path(exists=True, dir_okay=False), help="JSON file of global data.")
@click.option("--out-dir", "-o", default=None, help="Write <name>.html, .css and .js here instead of printing markup.")
@click.option("--no-bundle", is_flag=True, help="Keep <style> and <script> in the markup.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def build(
    input_file: str,
    components: Tuple[str, ...],
    data_file: Optional[str],
    out_dir: Optional[str],
    no_bundle: bool,
    verbose: bool,
) -> None:
    """Compile INPUT with its components."""
    from pywebc.compiler.build import build_file

    configure_logging(verbose)
    try:
        config = WebCConfig.load()
        data = load_data_file(Path(data_file)) if data_file else config.load_data()
        target = Path(out_dir) if out_dir else config.out_dir
        result, summary = asyncio.run(
            build_file(
                _relative_input(input_file, config),
                config,
                components=components,
                data=data,
                out_dir=target,
                bundler_mode=False if no_bundle else None,
            )
        )
    except WebCError as e:
        raise click.ClickException(str(e))

    if target is None:
        click.echo(result.html)
        return

    console.print(
        "✅ Build complete "
        f"(components={summary.components}, css={summary.css}, js={summary.js}, "
        f"out={summary.out_dir})"
    )


@cli.command(name="components")
@click.argument("input_file", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@component_option
def list_components_command(input_file: str, components: Tuple[str, ...]) -> None:
    """Print the component files INPUT uses."""
    from pywebc.compiler.build import list_components

    configure_logging(False)
    try:
        config = WebCConfig.load()
        used = asyncio.run(
            list_components(_relative_input(input_file, config), config, components)
        )
    except WebCError as e:
        raise click.ClickException(str(e))

    for file_path in used:
        click.echo(file_path)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
