import click
from pathlib import Path
import logging
import sys

from .configuration import RepositoryConfig
from .container import ApplicationContainer
from .error_handling import GearRepositoryError, classify_error, log_error
from .git import ApplicationRepository, GearIdentity, PopulateFromTemplate, PopulateFromUrl
from .locking import GearLock
from .logging_config import configure_logging

__version__ = "0.1.0"

__all__ = [
    "ApplicationContainer",
    "ApplicationRepository",
    "GearLock",
    "RepositoryConfig",
    "main",
]


def _repository(ctx: click.Context) -> ApplicationRepository:
    return ctx.obj["repository"]


def _run(ctx: click.Context, operation: str, func, lock: bool = True):
    """Run a repository operation, mapping failures to exit codes."""
    identity: GearIdentity = ctx.obj["identity"]
    try:
        if lock:
            with GearLock(identity.container_dir, blocking=not ctx.obj["no_wait"]):
                return func()
        return func()
    except (GearRepositoryError, OSError) as e:
        context = classify_error(e, operation=operation, gear_uuid=identity.uuid)
        log_error(context)
        click.echo(context.message, err=True)
        ctx.exit(context.exit_code)


@click.group()
@click.option(
    "--container-dir",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Gear container (home) directory",
)
@click.option("--uuid", required=True, help="Gear UUID")
@click.option("--app-name", required=True, help="Application name")
@click.option("--uid", type=int, default=None, help="Gear user id (default: current)")
@click.option("--gid", type=int, default=None, help="Gear group id (default: current)")
@click.option("--env-file", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--no-wait", is_flag=True, help="Fail instead of waiting for the gear lock")
@click.option("-v", "--verbose", count=True)
@click.pass_context
def main(
    ctx: click.Context,
    container_dir: Path,
    uuid: str,
    app_name: str,
    uid: int | None,
    gid: int | None,
    env_file: Path | None,
    no_wait: bool,
    verbose: int,
) -> None:
    """Gear repository manager - provision and deploy a gear's git repository"""
    if env_file is not None and env_file.exists():
        from dotenv import load_dotenv

        load_dotenv(env_file, override=False)

    config = RepositoryConfig.from_env()

    log_level = config.log_level
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    configure_logging(log_level)

    identity = GearIdentity(
        uuid=uuid,
        application_name=app_name,
        container_dir=str(container_dir),
        uid=uid,
        gid=gid,
    )
    gear = ApplicationContainer(
        identity.uuid,
        identity.application_name,
        identity.container_dir,
        uid=identity.uid,
        gid=identity.gid,
        config=config,
    )
    ctx.obj = {
        "identity": identity,
        "no_wait": no_wait,
        "repository": ApplicationRepository(gear, config),
    }


@main.command()
@click.pass_context
def exists(ctx: click.Context) -> None:
    """Exit 0 if the bare repository exists, 1 otherwise."""
    present = _repository(ctx).exists()
    click.echo("true" if present else "false")
    ctx.exit(0 if present else 1)


@main.command("populate-template")
@click.argument("cartridge_name")
@click.pass_context
def populate_template(ctx: click.Context, cartridge_name: str) -> None:
    """Populate the repository from a cartridge template."""
    request = PopulateFromTemplate(cartridge_name=cartridge_name)
    repository = _repository(ctx)
    template = _run(
        ctx,
        "populate_from_cartridge",
        lambda: repository.populate_from_cartridge(request.cartridge_name),
    )
    if template is not None:
        click.echo(str(template))


@main.command("populate-url")
@click.argument("cartridge_name")
@click.argument("url")
@click.pass_context
def populate_url(ctx: click.Context, cartridge_name: str, url: str) -> None:
    """Populate the repository by cloning URL."""
    request = PopulateFromUrl(cartridge_name=cartridge_name, url=url)
    repository = _repository(ctx)
    _run(
        ctx,
        "populate_from_url",
        lambda: repository.populate_from_url(request.cartridge_name, request.url),
    )


@main.command()
@click.pass_context
def deploy(ctx: click.Context) -> None:
    """Deploy HEAD into app-root/runtime/repo."""
    repository = _repository(ctx)
    _run(ctx, "deploy", repository.deploy)


@main.command()
@click.pass_context
def destroy(ctx: click.Context) -> None:
    """Remove the bare repository."""
    repository = _repository(ctx)
    _run(ctx, "destroy", repository.destroy)


@main.command()
@click.pass_context
def head(ctx: click.Context) -> None:
    """Print the commit HEAD points to."""
    commit = _repository(ctx).head_commit()
    if commit is None:
        click.echo("Repository is absent or empty", err=True)
        ctx.exit(1)
    click.echo(commit)


if __name__ == "__main__":
    main()
