"""Main entrypoint for the `seedy` command."""
import sys
from typing import Optional

import click
from attrs import evolve
from rich.table import Table

from seedy.core.config import Config, load_config
from seedy.core.context import Context, load_context
from seedy.core.errors import ConfigError, InventoryError, StartupError
from seedy.utils import CONSOLE, configure_output, error, log


def _override(config: Config, **overrides) -> Config:
    """Applies the command line options on top of the file configuration.

    Options left to None are ignored. Keys are in the form
    `section__option` for options within a section.
    """
    sections = {}
    top_level = {}

    for key, value in overrides.items():
        if value is None:
            continue

        section, sep, option = key.partition("__")
        if sep:
            sections.setdefault(section, {})[option] = value

        else:
            top_level[key] = value

    try:
        for section, values in sections.items():
            top_level[section] = evolve(getattr(config, section), **values)

        return evolve(config, **top_level)

    except ConfigError as exc:
        raise click.BadParameter(str(exc)) from exc


def _load(ctx: click.Context, with_queue: bool, **overrides) -> Context:
    config = _override(ctx.obj, **overrides)

    try:
        return load_context(config=config, with_queue=with_queue)

    except StartupError as exc:
        error(str(exc))
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default="./seedy.toml")
@click.option("-v", "--verbose", count=True, help="Verbose mode (-v, -vv, etc.)")
@click.option("--quiet", is_flag=True, default=False, help="Print only errors.")
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: int, quiet: bool):
    """Redeploys Docker Swarm services when a new image is pushed to ECR."""
    configure_output(verbosity=verbose, quiet=quiet)

    try:
        ctx.obj = load_config(path=config_path)

    except ConfigError as exc:
        error(str(exc))
        sys.exit(1)


@cli.command()
@click.option("-q", "--queue", "queue_name", default=None, help="SQS queue receiving ECR events.")
@click.option("--region", default=None, help="AWS region of the queue.")
@click.option("--filter-label", default=None, help="Update only services labelled key=value.")
@click.option("--concurrency", type=int, default=None)
@click.option("--wait-time", type=int, default=None)
@click.option("--timeout", type=float, default=None)
@click.option("--docker-url", default=None)
@click.option("--registry-auth/--no-registry-auth", default=None)
@click.option("--qualified-images/--no-qualified-images", default=None)
@click.option("--max-batches", type=int, default=None, help="Stop after polling N times.")
@click.pass_context
def listen(
    ctx: click.Context,
    queue_name: Optional[str],
    region: Optional[str],
    filter_label: Optional[str],
    concurrency: Optional[int],
    wait_time: Optional[int],
    timeout: Optional[float],
    docker_url: Optional[str],
    registry_auth: Optional[bool],
    qualified_images: Optional[bool],
    max_batches: Optional[int],
):  # pylint: disable=too-many-arguments
    """Listens for ECR push events and updates the matching services."""
    seedy_ctx = _load(
        ctx,
        with_queue=True,
        queue__name=queue_name,
        queue__region=region,
        queue__wait_time=wait_time,
        orchestrator__base_url=docker_url,
        orchestrator__filter_label=filter_label,
        orchestrator__registry_auth=registry_auth,
        orchestrator__qualified_images=qualified_images,
        consumer__concurrency=concurrency,
        timeout=timeout,
    )

    try:
        consumer = seedy_ctx.consumer()

    except StartupError as exc:
        error(str(exc))
        sys.exit(1)

    log(f"listening for ECR events on {seedy_ctx.config.queue.name}")

    try:
        consumer.run(max_batches=max_batches)

    except KeyboardInterrupt:
        consumer.stop()
        log("stopped listening")


@cli.command()
@click.option("--filter-label", default=None, help="List only services labelled key=value.")
@click.option("--docker-url", default=None)
@click.pass_context
def services(ctx: click.Context, filter_label: Optional[str], docker_url: Optional[str]):
    """Shows the services seedy would consider for an update."""
    seedy_ctx = _load(
        ctx,
        with_queue=False,
        orchestrator__base_url=docker_url,
        orchestrator__filter_label=filter_label,
    )

    try:
        descriptors = seedy_ctx.inventory().list_services()

    except InventoryError as exc:
        error(str(exc))
        sys.exit(1)

    table = Table(title="Services")
    table.add_column("ID", justify="left", no_wrap=True)
    table.add_column("Name")
    table.add_column("Image")

    for descriptor in descriptors:
        table.add_row(descriptor.service_id, descriptor.name, str(descriptor.image_ref))

    CONSOLE.print(table)


if __name__ == "__main__":
    cli()  # pylint: disable=no-value-for-parameter
