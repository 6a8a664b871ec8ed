"""CLI entrypoint for weavereg."""

import sys
from pathlib import Path

import click

from . import __version__
from .config import RegistryConfig, load_config


@click.group()
@click.version_option(__version__, prog_name="weavereg")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to weavereg.toml (defaults to ./weavereg.toml)",
)
@click.option(
    "--home",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Registry directory (overrides registry.home)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (overrides registry.log_level)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, home: Path | None, log_level: str | None) -> None:
    """weavereg - Tamper-evident registry of weaves and their entries.

    Inspect the append-only ledger, list weaves, and verify integrity.
    """
    ctx.ensure_object(dict)
    if config_path is not None and not config_path.exists():
        raise click.BadParameter(f"File '{config_path}' does not exist.", param_hint="--config / -c")
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    config = RegistryConfig(
        home=home.resolve() if home is not None else config.home,
        owner=config.owner,
        log_level=log_level.upper() if log_level else config.log_level,
    )
    config.configure_logging()
    ctx.obj["config"] = config
    ctx.obj["home"] = config.home


@cli.command()
@click.option("--owner", type=str, default=None, help="Administrator identity (defaults to registry.owner)")
@click.pass_context
def init(ctx: click.Context, owner: str | None) -> None:
    """Initialize the registry with its administrator.

    Has no effect on a registry that already has one.
    """
    from .commands.weave_cmd import run_init

    owner = owner or ctx.obj["config"].owner
    if not owner:
        raise click.UsageError("No owner given. Pass --owner or set registry.owner in weavereg.toml.")
    sys.exit(run_init(ctx.obj["home"], owner))


@cli.command()
@click.pass_context
def owner(ctx: click.Context) -> None:
    """Print the current administrator."""
    from .commands.weave_cmd import run_owner

    sys.exit(run_owner(ctx.obj["home"]))


@cli.command()
@click.argument("identity")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def weaves(ctx: click.Context, identity: str, output_json: bool) -> None:
    """List weaves created by IDENTITY, in creation order."""
    from .commands.weave_cmd import run_weaves_of

    sys.exit(run_weaves_of(ctx.obj["home"], identity, output_json=output_json))


@cli.command()
@click.argument("weave_id")
@click.option("--active-only", is_flag=True, help="Hide inactive entries")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, weave_id: str, active_only: bool, output_json: bool) -> None:
    """Show a weave and its full entry history.

    Examples:

        weavereg show w1

        weavereg show w1 --active-only --json
    """
    from .commands.weave_cmd import run_show

    sys.exit(run_show(ctx.obj["home"], weave_id, active_only=active_only, output_json=output_json))


@cli.command()
@click.option("--weave", "weave_id", type=str, default=None, help="Only events of this weave")
@click.option("--type", "event_type", type=str, default=None, help="Only events of this type (e.g. entry.added)")
@click.option("--limit", type=int, default=None, help="Max events to show")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def history(
    ctx: click.Context,
    weave_id: str | None,
    event_type: str | None,
    limit: int | None,
    output_json: bool,
) -> None:
    """Show committed notifications from the ledger, oldest first."""
    from .commands.weave_cmd import run_history

    sys.exit(
        run_history(
            ctx.obj["home"],
            weave_id=weave_id,
            event_type=event_type,
            limit=limit,
            output_json=output_json,
        )
    )


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def verify(ctx: click.Context, output_json: bool) -> None:
    """Verify the ledger's checksum chain."""
    from .commands.weave_cmd import run_verify

    sys.exit(run_verify(ctx.obj["home"], output_json=output_json))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
