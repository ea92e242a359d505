"""CDN cache CLI commands."""

import asyncio

import typer

cache_app = typer.Typer()


@cache_app.command("purge")
def purge(
    dataset_id: str = typer.Argument(..., help="Dataset whose cached pages are purged"),
    edition: str = typer.Argument(..., help="Edition whose version listings are purged"),
) -> None:
    """Purge the cached website and API pages of a dataset edition."""
    asyncio.run(_purge(dataset_id, edition))


async def _purge(dataset_id: str, edition: str) -> None:
    """Async implementation of a manual cache purge."""
    from catalog_api.core.config import get_settings
    from catalog_api.lib.downstream import CachePurgeError, generate_purge_prefixes
    from catalog_api.main import build_purge_client

    settings = get_settings()
    client = build_purge_client(settings)
    if client is None:
        typer.echo("Error: cache purging is disabled (set CLOUDFLARE_ENABLED=true)", err=True)
        raise typer.Exit(code=1)

    prefixes = generate_purge_prefixes(settings.website_url, settings.api_router_public_url, dataset_id, edition)
    try:
        requests = await client.purge_prefixes(prefixes)
    except CachePurgeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await client.close()
    typer.echo(f"Purged {len(prefixes)} prefixes in {requests} request(s)")
