"""
HERE Geocoder — CLI Entry Point
================================
Installed as the ``here-geocode`` command via ``pyproject.toml``.

Usage:
    here-geocode batch --input data/listings.csv --output output/listings.geojson
    here-geocode lookup "350 5th Ave, New York"
    here-geocode reverse 40.7484 -73.9857
    here-geocode suggest "350 5th"

The API key is read from ``--api-key`` or the ``HERE_API_KEY`` environment
variable.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, TypeVar

import click

from shared.python.base_tool import configure_console_logging
from shared.python.exceptions import GeocodeHubError

from here_geocoder.batch import BatchGeoCoder
from here_geocoder.csv_tool import CsvBatchGeocoder, CsvColumns
from here_geocoder.geocoder import GeoCoder
from here_geocoder.jobs import DEFAULT_POLL_INTERVAL, BatchJobClient
from here_geocoder.models import Coordinates
from here_geocoder.search import HereSearchClient
from here_geocoder.settings import (
    API_KEY_ENV_VAR,
    DEFAULT_COUNTRY_CODE,
    ApiKeyProvider,
    EnvironmentApiKeyProvider,
    StaticApiKeyProvider,
)

T = TypeVar("T")


@click.group(name="here-geocode", help="Geocode addresses with the HERE APIs.")
@click.option(
    "--api-key",
    default=None,
    help=f"HERE API key. Defaults to the {API_KEY_ENV_VAR} environment variable.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, api_key: str | None, verbose: bool) -> None:
    """CLI entry point — stores the key provider for the subcommands."""
    configure_console_logging(verbose=verbose)
    ctx.ensure_object(dict)
    provider: ApiKeyProvider = (
        StaticApiKeyProvider(api_key) if api_key else EnvironmentApiKeyProvider()
    )
    ctx.obj["api_keys"] = provider
    ctx.obj["verbose"] = verbose


@main.command(help="Batch-geocode a CSV of addresses into a GeoJSON FeatureCollection.")
@click.option(
    "--input", "-i", "input_path",
    required=True,
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    help="Path to the input CSV file.",
)
@click.option(
    "--output", "-o", "output_path",
    required=True,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Path for the output GeoJSON file.",
)
@click.option("--id-col", default="id", show_default=True, help="Column holding the request id.")
@click.option("--street-col", default="street", show_default=True)
@click.option("--city-col", default="city", show_default=True)
@click.option("--region-col", default="region", show_default=True)
@click.option("--postal-code-col", default="postal_code", show_default=True)
@click.option("--country-col", default="country", show_default=True)
@click.option(
    "--poll-interval",
    default=DEFAULT_POLL_INTERVAL,
    show_default=True,
    type=float,
    help="Seconds between job status checks.",
)
@click.pass_context
def batch(
    ctx: click.Context,
    input_path: Path,
    output_path: Path,
    id_col: str,
    street_col: str,
    city_col: str,
    region_col: str,
    postal_code_col: str,
    country_col: str,
    poll_interval: float,
) -> None:
    columns = CsvColumns(
        id=id_col,
        street=street_col,
        city=city_col,
        region=region_col,
        postal_code=postal_code_col,
        country=country_col,
    )
    with BatchJobClient(ctx.obj["api_keys"], poll_interval=poll_interval) as client:
        tool = CsvBatchGeocoder(
            input_path=input_path,
            output_path=output_path,
            geocoder=BatchGeoCoder(client),
            columns=columns,
            verbose=ctx.obj["verbose"],
        )
        _run(tool.run)

    outcome = tool.outcome
    click.echo(f"\nGeoJSON written to: {output_path}")
    if outcome is not None:
        total = len(outcome.resolved) + len(outcome.unresolved)
        click.echo(f"Geocoded: {len(outcome.resolved)}/{total} addresses successfully.")


@main.command(help="Coordinates for a free-text address query.")
@click.argument("query")
@click.pass_context
def lookup(ctx: click.Context, query: str) -> None:
    with _search(ctx) as search:
        coordinates = _run(lambda: GeoCoder(search).coordinates_from_query(query))
    if coordinates is None:
        click.echo("No match found.")
        return
    click.echo(f"{coordinates.latitude:.6f},{coordinates.longitude:.6f}")


@main.command(help="Nearest address to a latitude / longitude pair.")
@click.argument("latitude", type=float)
@click.argument("longitude", type=float)
@click.pass_context
def reverse(ctx: click.Context, latitude: float, longitude: float) -> None:
    with _search(ctx) as search:
        address = _run(
            lambda: GeoCoder(search).address_from_coordinates(Coordinates(latitude, longitude))
        )
    if address is None:
        click.echo("No address found.")
        return
    click.echo(address.label or ", ".join(
        part for part in (address.street, address.city, address.region,
                          address.postal_code, address.country) if part
    ))


@main.command(help="Autocomplete suggestions for a partial address.")
@click.argument("query")
@click.option(
    "--country",
    default=DEFAULT_COUNTRY_CODE,
    show_default=True,
    help="ISO 3166 alpha-3 country code to restrict suggestions to.",
)
@click.pass_context
def suggest(ctx: click.Context, query: str, country: str) -> None:
    with _search(ctx) as search:
        suggestions = _run(
            lambda: GeoCoder(search, country_code=country).suggestions_from_query(query)
        )
    if not suggestions:
        click.echo("No suggestions.")
    for label in suggestions:
        click.echo(label)


def _search(ctx: click.Context) -> HereSearchClient:
    return HereSearchClient(ctx.obj["api_keys"])


def _run(action: Callable[[], T]) -> T:
    try:
        return action()
    except GeocodeHubError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
