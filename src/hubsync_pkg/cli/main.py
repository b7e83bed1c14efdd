"""Main CLI application."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import app_api
from ..contracts.errors import HubSyncError

app = typer.Typer(
    name="hubsync",
    help="Synchronize numeric engine workspaces with an engineering repository",
    no_args_is_help=True
)
console = Console()


def _load(config: Optional[Path]):
    if config:
        return app_api.load_config_from_file(config)
    return app_api.get_default_config()


@app.command()
def validate(
    config: Path = typer.Argument(..., help="Configuration file to validate")
):
    """Validate a configuration file."""

    try:
        cfg = app_api.load_config_from_file(config)
        app_api.validate_configuration(cfg)
        console.print(f"✅ Configuration {config} is valid", style="green")

    except HubSyncError as e:
        console.print(f"❌ {e.message}", style="red")
        raise typer.Exit(1)


@app.command("show-config")
def show_config(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
):
    """Print the effective configuration as TOML."""

    try:
        cfg = _load(config)
    except HubSyncError as e:
        console.print(f"❌ {e.message}", style="red")
        raise typer.Exit(1)

    console.print(cfg.model_dump_toml(), markup=False, highlight=False)


@app.command("parse-script")
def parse_script(
    path: Path = typer.Argument(..., help="Script to inspect"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    keep: bool = typer.Option(
        False, "--keep", help="Keep the copy of the script without its inputs"
    ),
):
    """List the inputs detected in a script."""

    try:
        cfg = _load(config)
        result, variables = app_api.parse_script(path, cfg)
    except HubSyncError as e:
        console.print(f"❌ {e.message}", style="red")
        if e.details:
            console.print(f"Details: {e.details}")
        raise typer.Exit(1)

    table = Table(title=f"Inputs of {path.name}")
    table.add_column("Name")
    table.add_column("Value")
    table.add_column("Identifier")
    for variable in variables:
        table.add_row(variable.name, str(variable.actual_value), variable.identifier or "")
    console.print(table)

    if result.duplicated_names:
        console.print(
            f"Ignored inputs assigned more than once: {', '.join(result.duplicated_names)}",
            style="yellow",
        )

    if keep:
        console.print(f"Script without inputs: {result.script_without_inputs_path}")
    else:
        Path(result.script_without_inputs_path).unlink(missing_ok=True)


@app.command()
def diff(
    old: str = typer.Argument(..., help="Current value"),
    new: str = typer.Argument(..., help="Proposed value"),
):
    """Show the difference between two values as listed before a transfer."""

    difference, percent = app_api.compare_values(old, new)
    console.print(f"{difference} ({percent})")


@app.command()
def info():
    """Display package information and diagnostics."""

    from .. import __version__

    console.print(f"hubsync v{__version__}")
    console.print()

    try:
        cfg = app_api.get_default_config()
        console.print(f"Tool name: {cfg.mapping.tool_name}")
        console.print(f"Mapping configuration: {cfg.mapping.configuration_name}")
    except HubSyncError:
        console.print("Could not load configuration")

    console.print()

    rules = app_api.list_mapping_rules()
    console.print(f"Mapping rules: {len(rules)}")
    for direction, name in rules.items():
        console.print(f"  {direction}: {name}")


if __name__ == "__main__":
    app()
