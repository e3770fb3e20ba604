"""Click CLI commands for PointViewer."""

import asyncio
import json
import logging

import click
from tqdm import tqdm

from . import constants
from .controller import VisualizationController, VisualizationState
from .models import JobStatus
from .transport import PointCloudApiClient

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """PointViewer CLI for fetching georeferenced point clouds by address."""
    pass


@cli.command()
@click.argument('address')
@click.option('--buffer-km', '-b', default=constants.DEFAULT_BUFFER_KM, show_default=True,
              help='Radius around the address to reconstruct')
@click.option('--base-url', default=constants.API_BASE_URL, show_default=True,
              help='Processing service URL')
@click.option('--geocode-zone/--fixed-zone', default=constants.USE_GEOCODED_ZONE,
              help='Derive the UTM zone from the address instead of the configured one')
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None,
              help='Write the final viewer state (points + camera) as JSON')
def visualize(address: str, buffer_km: float, base_url: str, geocode_zone: bool, output):
    """Request a point cloud for ADDRESS and report how it would be framed."""
    state = asyncio.run(async_visualize(address, buffer_km, base_url, geocode_zone))

    if state.status is not JobStatus.completed:
        raise click.ClickException(f"[{state.error_kind}] {state.error}")

    view = state.view_state
    click.echo(f"\n{'='*50}")
    click.echo(f"Points:  {len(state.points)}")
    click.echo(f"Center:  {view.latitude:.6f}, {view.longitude:.6f}")
    click.echo(f"Zoom:    {view.zoom:.0f}  (pitch {view.pitch:.0f}, bearing {view.bearing:.0f})")
    if output:
        with open(output, 'w') as f:
            json.dump(state.to_dict(), f)
        click.echo(f"State:   {output}")
    click.echo(f"{'='*50}")


async def async_visualize(address: str, buffer_km: float, base_url: str,
                          geocode_zone: bool) -> VisualizationState:
    """Run one request cycle, echoing status changes and download progress."""
    controller = VisualizationController(api=PointCloudApiClient(base_url=base_url),
                                         use_geocoded_zone=geocode_zone)
    bar = None
    last_status = None

    async def _watch():
        nonlocal bar, last_status
        async for state in controller.subscribe():
            if state.status is not last_status:
                last_status = state.status
                click.echo(f"[{state.status.value}] {address}")
            if state.error_kind == "transient":
                click.echo(f"  {state.error}")
            if state.progress.is_active:
                if bar is None:
                    bar = tqdm(total=100, unit='%', desc='Downloading')
                bar.update(round(state.progress.fraction_complete * 100) - bar.n)
            elif bar is not None:
                bar.close()
                bar = None

    watcher = asyncio.create_task(_watch())
    try:
        return await controller.run(address, buffer_km)
    finally:
        watcher.cancel()
        if bar is not None:
            bar.close()
        await controller.aclose()


def main():
    cli()


if __name__ == '__main__':
    main()
