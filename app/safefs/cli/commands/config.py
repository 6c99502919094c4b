"""Configuration management commands.

Provides commands to show, create and locate the safefs configuration
file.
"""

from typing import Annotated

import tomli_w
import typer

from safefs.cli.types import load_config_or_exit
from safefs.core.config import get_default_config, save_config
from safefs.core.paths import get_config_path
from safefs.errors import SafefsError
from safefs.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show and manage the safefs configuration.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Show the effective configuration as TOML."""
    config = load_config_or_exit()
    config_path = get_config_path()

    source = str(config_path) if config_path.exists() else "built-in defaults"
    console.print(f"[muted]# Source: {source}[/muted]")
    console.print(tomli_w.dumps(config.model_dump(exclude_none=True)), markup=False)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a default configuration file."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        print_error(f"Config already exists: {config_path}")
        print_info("Use --force to overwrite it with defaults.")
        raise typer.Exit(code=1)

    try:
        save_config(get_default_config(), config_path)
    except SafefsError as e:
        print_error(f"Failed to write config: {e}")
        raise typer.Exit(code=1) from e
    print_success(f"Config written to {config_path}")


@app.command()
def path() -> None:
    """Print the configuration file path."""
    typer.echo(str(get_config_path()))
