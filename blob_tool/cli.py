"""
Command-line interface for the blob store.

Configure the store, list and search objects, and upload audio files using
the Click framework.
"""

import json
import mimetypes
import time
from pathlib import Path

import click
import requests
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from shared.config import StoreConfig, api_url, load_store_config
from shared.constants import DEFAULT_NETWORK_TIMEOUT, LIST_BLOBS_LIMIT, RESOLVE_BLOBS_LIMIT, UPLOAD_PREFIX
from shared.models import StorageProvider
from .provider_factory import StorageProviderFactory
from .storage_provider import BlobStoreError, find_blob

console = Console()


def _connect():
    """Authenticated store, or None after printing why not."""
    try:
        return StorageProviderFactory.from_config()
    except BlobStoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """
    🎵 SolanaPod Blob Tool

    Manage the audio objects the pod streams from
    (Cloudflare R2 or a local folder).
    """
    pass


@cli.command()
@click.option('--provider', type=click.Choice(['r2', 'local']),
              help='Storage provider (r2=Cloudflare R2, local=folder)')
def init(provider):
    """
    Save blob store credentials.

    Prompts for the provider's settings, checks the connection and writes
    the config file. Environment variables still take precedence.
    """
    console.print(Panel.fit(
        "[bold cyan]🎵 Blob Store Setup[/bold cyan]\n\n"
        "Connect SolanaPod to the bucket holding your audio.",
        border_style="cyan"
    ))

    if not provider:
        provider = Prompt.ask("Provider", choices=["r2", "local"], default="r2")
    provider_enum = StorageProvider(provider)

    if provider_enum == StorageProvider.CLOUDFLARE_R2:
        config = StoreConfig(
            provider=provider_enum,
            account_id=Prompt.ask("Cloudflare Account ID").strip(),
            access_key_id=Prompt.ask("Access Key ID").strip(),
            secret_access_key=Prompt.ask("Secret Access Key", password=True).strip(),
            bucket=Prompt.ask("Bucket name").strip(),
            public_url=Prompt.ask("Public bucket URL (blank for signed URLs)", default="").strip(),
        )
    else:
        config = StoreConfig(
            provider=provider_enum,
            base_path=Prompt.ask("Folder", default=str(Path.home() / "solanapod-blobs")).strip(),
            public_url=Prompt.ask("Public URL serving the folder (blank for file://)", default="").strip(),
        )

    try:
        StorageProviderFactory.from_config(config)
    except BlobStoreError as e:
        console.print(f"[red]❌ {e}[/red]")
        return

    saved = config.save()
    console.print(f"[green]✓[/green] {StorageProviderFactory.get_provider_name(provider_enum)} connected")
    console.print(f"[green]✓[/green] Configuration saved to: {saved}")


@cli.command(name='list')
@click.option('--prefix', default=None, help='Only objects under this prefix')
def list_cmd(prefix):
    """List objects in the store."""
    store = _connect()
    if store is None:
        return
    try:
        blobs = store.list_blobs(prefix=prefix, limit=LIST_BLOBS_LIMIT)
    except BlobStoreError as e:
        console.print(f"[red]List failed: {e}[/red]")
        return

    if not blobs:
        console.print("[yellow]No objects found.[/yellow]")
        return

    table = Table(title=f"Blobs ({len(blobs)})")
    table.add_column("Pathname", style="bold white", no_wrap=True)
    table.add_column("Size", style="magenta", justify="right")
    table.add_column("URL", style="cyan")
    for blob in blobs:
        table.add_row(blob.pathname, str(blob.size), blob.url)
    console.print(table)


@cli.command()
@click.option('--api', 'base_url', default=None, help='API server URL (default: SOLANAPOD_API_URL)')
def tracks(base_url):
    """Ask the API server which audio tracks it will merge into the library."""
    url = f"{(base_url or api_url()).rstrip('/')}/api/audio/tracks"
    try:
        response = requests.get(url, timeout=DEFAULT_NETWORK_TIMEOUT)
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        console.print(f"[red]Could not reach {url}: {e}[/red]")
        return
    if not response.ok:
        console.print(f"[red]{data.get('error', response.status_code)}[/red]")
        return
    pathnames = [t.get('pathname') for t in data.get('tracks', [])]
    console.print_json(json.dumps({"pathnames": pathnames, "count": len(pathnames)}))


@cli.command()
@click.argument('query')
def find(query):
    """Find the first object whose pathname contains every word of QUERY."""
    store = _connect()
    if store is None:
        return
    try:
        blobs = store.list_blobs(limit=RESOLVE_BLOBS_LIMIT)
    except BlobStoreError as e:
        console.print(f"[red]List failed: {e}[/red]")
        return

    match = find_blob(blobs, query)
    if match is None:
        console.print(f"[yellow]No match for '{query}' among {len(blobs)} objects.[/yellow]")
        return
    console.print(f"[green]✓[/green] {match.pathname}")
    console.print(f"  [cyan]{match.url}[/cyan]")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--path', 'blob_path', default=None,
              help=f'Destination pathname (default: {UPLOAD_PREFIX}/<ms>-<filename>)')
def upload(file, blob_path):
    """Upload FILE to the store with public read access."""
    store = _connect()
    if store is None:
        return
    source = Path(file)
    target = blob_path or f"{UPLOAD_PREFIX}/{int(time.time() * 1000)}-{source.name}"
    content_type = mimetypes.guess_type(source.name)[0]
    try:
        blob = store.put(target, source.read_bytes(), content_type=content_type)
    except BlobStoreError as e:
        console.print(f"[red]❌ Upload failed: {e}[/red]")
        return
    console.print(f"[green]✅ Uploaded[/green] {blob.pathname}")
    console.print(f"  [cyan]{blob.url}[/cyan]")


@cli.command()
def status():
    """Show which store is configured."""
    try:
        config = load_store_config()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return
    if config is None:
        console.print("[yellow]No blob store configured. Run 'blob-tool init'.[/yellow]")
        return
    table = Table(show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Provider", StorageProviderFactory.get_provider_name(config.provider))
    if config.provider == StorageProvider.LOCAL:
        table.add_row("Folder", config.base_path)
    else:
        table.add_row("Account", config.account_id)
        table.add_row("Bucket", config.bucket)
    table.add_row("Public URL", config.public_url or "-")
    console.print(table)
