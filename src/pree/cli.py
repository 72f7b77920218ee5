"""CLI entry point for pree."""

import sys

import click

from pree.config import DEFAULT_ROOT_PID, Style
from pree.sorting import SortMetric


@click.command()
@click.version_option(package_name="pree")
@click.option("--rss/--no-rss", "show_rss", default=True, help="Show RSS columns")
@click.option("--cpu/--no-cpu", "show_cpu", default=True, help="Show CPU columns")
@click.option(
    "--sort",
    type=click.Choice([metric.value for metric in SortMetric], case_sensitive=False),
    default=SortMetric.RSS.value,
    show_default=True,
    help="Accumulated metric to order children by",
)
@click.option("--reverse", is_flag=True, help="Sort descending")
@click.option(
    "--root",
    "root_pid",
    type=int,
    default=DEFAULT_ROOT_PID,
    show_default=True,
    help="PID to draw the tree from",
)
@click.option(
    "--style",
    type=click.Choice([style.value for style in Style], case_sensitive=False),
    default=Style.AUTO.value,
    show_default=True,
    help="Tree drawing style (auto: fancy on a terminal)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug events to stderr")
def main(
    show_rss: bool,
    show_cpu: bool,
    sort: str,
    reverse: bool,
    root_pid: int,
    style: str,
    verbose: bool,
) -> None:
    """Show the process tree with memory and CPU summed over each subtree."""
    from pree import logging as pree_log
    from pree.config import RenderConfig
    from pree.errors import RootNotFound
    from pree.records import default_sources
    from pree.render import make_renderer
    from pree.store import ProcessStore

    pree_log.configure(verbose)

    config = RenderConfig.create(
        show_rss=show_rss,
        show_cpu=show_cpu,
        sort=sort,
        reverse=reverse,
        root_pid=root_pid,
        style=style,
    )

    source, clock = default_sources()
    store = ProcessStore(source, clock)
    skipped = store.enumerate_all()
    if verbose:
        pree_log.snapshot_summary(len(store), len(skipped))

    try:
        root = store.root(config.root_pid)
    except RootNotFound:
        pree_log.root_not_found(config.root_pid)
        raise SystemExit(1)

    isatty = sys.stdout.isatty()
    for line in make_renderer(config, isatty).render(root):
        click.echo(line)


if __name__ == "__main__":
    main()
