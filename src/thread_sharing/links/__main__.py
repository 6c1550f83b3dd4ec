"""CLI entry point for thread links and sharing.

Allows opening shared-thread links and toggling sharing from the command line:
    python -m thread_sharing.links open "mailspring://plugins/thread-sharing?subject=Hi&date=1700000000"
"""

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import click

from thread_sharing.api import StaticAssetClient, UploadFailed
from thread_sharing.attachments import AttachmentStore
from thread_sharing.config import Config, load_config
from thread_sharing.links.resolver import open_thread_from_url
from thread_sharing.logging import setup_logging
from thread_sharing.models import Thread
from thread_sharing.publisher.pipeline import PublishPipeline
from thread_sharing.store import MailStore
from thread_sharing.tasks import MetadataTaskQueue


def format_timestamp(ts: int | None) -> str:
    """Format timestamp for display."""
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def print_thread(thread: Thread) -> None:
    click.echo(f"\033[1m{thread.subject}\033[0m")
    click.echo(f"ID: {thread.id}")
    click.echo(f"First message: {format_timestamp(thread.first_message_ts)}")
    click.echo(f"Last sent: {format_timestamp(thread.last_message_sent_ts)}")
    click.echo(f"Last received: {format_timestamp(thread.last_message_received_ts)}")


@contextmanager
def open_pipeline(config: Config) -> Iterator[tuple[MailStore, PublishPipeline, MetadataTaskQueue]]:
    """Pipeline whose metadata writes are applied when the block exits."""
    with MailStore(config.store.db_path) as store, StaticAssetClient(config.api) as client:
        tasks = MetadataTaskQueue(store)
        pipeline = PublishPipeline(
            store=store,
            client=client,
            attachments=AttachmentStore(config.store.attachments_path),
            sink=tasks,
            identity=config.identity,
            share_url_base=config.api.share_url_base,
        )
        try:
            yield store, pipeline, tasks
        finally:
            tasks.process_pending()


def load_thread(store: MailStore, thread_id: str) -> Thread:
    thread = store.find_thread(thread_id)
    if thread is None:
        raise click.ClickException(f"No thread with id {thread_id}")
    return thread


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Path to config.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Log to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Share threads and open shared-thread links."""
    ctx.obj = load_config(Path(config_path) if config_path else None)
    setup_logging("links", console=verbose)


@cli.command("open")
@click.argument("url")
@click.pass_obj
def open_command(config: Config, url: str) -> None:
    """Find the local thread a shared link refers to."""
    errors: list[str] = []

    with MailStore(config.store.db_path) as store:
        open_thread_from_url(
            url,
            store,
            on_open=print_thread,
            on_error=lambda error, message: errors.append(message),
            date_epsilon=config.sharing.date_epsilon_seconds,
        )

    if errors:
        click.echo(errors[0], err=True)
        sys.exit(1)


@cli.command()
@click.argument("thread_id")
@click.pass_obj
def share(config: Config, thread_id: str) -> None:
    """Publish a thread and print its link."""
    with open_pipeline(config) as (store, pipeline, _tasks):
        thread = load_thread(store, thread_id)
        try:
            published = pipeline.publish(thread)
        except UploadFailed as e:
            raise click.ClickException(f"Unable to share '{thread.subject}': {e}") from e

        if not published:
            click.echo("Thread is already up to date.", err=True)
        click.echo(pipeline.sharing_url_for_thread(thread))


@cli.command()
@click.argument("thread_id")
@click.pass_obj
def unshare(config: Config, thread_id: str) -> None:
    """Stop sharing a thread."""
    with open_pipeline(config) as (store, pipeline, _tasks):
        thread = load_thread(store, thread_id)
        if not pipeline.is_shared(thread):
            click.echo("Thread is not shared.", err=True)
            return
        try:
            pipeline.unpublish(thread)
        except UploadFailed as e:
            raise click.ClickException(f"Unable to unshare '{thread.subject}': {e}") from e
        click.echo(f"Unshared: {thread.subject}")


@cli.command()
@click.argument("thread_id")
@click.pass_obj
def url(config: Config, thread_id: str) -> None:
    """Print the link of a shared thread."""
    with open_pipeline(config) as (store, pipeline, _tasks):
        thread = load_thread(store, thread_id)
        link = pipeline.sharing_url_for_thread(thread)

    if link is None:
        click.echo("Thread is not shared.", err=True)
        sys.exit(1)
    click.echo(link)


if __name__ == "__main__":
    cli()
