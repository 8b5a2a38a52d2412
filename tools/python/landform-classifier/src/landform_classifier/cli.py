"""
Landform Classifier — CLI Entry Point
=====================================
Installed as the ``geo-landforms`` command via ``pyproject.toml``.

Usage::

    geo-landforms --input data/dem_30m.tif --output-dir output/landforms
    geo-landforms -i dem.tif -o out --radii 270,810,2430 --fine-radius 270 --units meters
    geo-landforms -i dem.tif -o out --products landforms,landforms_simple --clip-geojson aoi.geojson
    geo-landforms -i dem.tif -o out --resample-factor 3 -v
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from landform_classifier.pipeline import PRODUCTS, LandformClassifier, LandformConfig
from shared.python.exceptions import InputValidationError, LandformsError


def _parse_number_list(raw: str) -> list[float]:
    """Parse ``"3,9,27"`` into numbers, keeping whole values as ``int``."""
    values: list[float] = []
    for token in (t.strip() for t in raw.split(",")):
        if not token:
            continue
        number = float(token)
        values.append(int(number) if number.is_integer() else number)
    return values


def _parse_products(raw: str) -> list[str]:
    names = [p.strip().lower() for p in raw.split(",") if p.strip()]
    if not names or "all" in names:
        return list(PRODUCTS)
    return names


def _load_region(path: Path) -> dict[str, Any]:
    """Return the first geometry of a GeoJSON file (Feature/Collection/Geometry).

    Raises:
        InputValidationError: If the file is not JSON or holds no geometry object.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except ValueError as exc:
        raise InputValidationError(f"GeoJSON '{path}' is not valid JSON: {exc}") from exc

    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        features = data.get("features")
        if not isinstance(features, list) or not features:
            raise InputValidationError(f"GeoJSON '{path}' has no features.")
        data = features[0]
    if isinstance(data, dict) and data.get("type") == "Feature":
        data = data.get("geometry")
    if not isinstance(data, dict) or "coordinates" not in data:
        raise InputValidationError(f"GeoJSON '{path}' does not contain a geometry.")
    return data


@click.command(
    name="geo-landforms",
    help="Classify terrain landforms (slope, heat load, multi-scale TPI) from a DEM.",
)
@click.option(
    "--input", "-i", "input_path",
    required=True,
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    help="Path to the input DEM (GeoTIFF, .img, .vrt).",
)
@click.option(
    "--output-dir", "-o", "output_dir",
    required=True,
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    help="Directory for the output rasters and summary report.",
)
@click.option(
    "--radii",
    default="3,9,27",
    show_default=True,
    help="Three increasing kernel radii for the mean standardized TPI.",
)
@click.option(
    "--fine-radius",
    default=3.0,
    show_default=True,
    type=float,
    help="Kernel radius of the raw TPI.",
)
@click.option(
    "--units",
    type=click.Choice(["cells", "meters"], case_sensitive=False),
    default="cells",
    show_default=True,
    help="Units of --radii and --fine-radius.",
)
@click.option(
    "--resample-factor",
    default=1,
    show_default=True,
    type=int,
    help="Block-average the DEM by this integer factor before analysis.",
)
@click.option(
    "--clip-geojson",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="GeoJSON polygon (in the DEM's CRS) to restrict the analysis to.",
)
@click.option(
    "--products",
    default="all",
    show_default=True,
    help=f"Comma-separated products to write ({', '.join(PRODUCTS)}) or 'all'.",
)
@click.option("--band", default=1, show_default=True, type=int, help="1-based DEM band.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def main(
    input_path: Path,
    output_dir: Path,
    radii: str,
    fine_radius: float,
    units: str,
    resample_factor: int,
    clip_geojson: Path | None,
    products: str,
    band: int,
    verbose: bool,
) -> None:
    """CLI entry point — wires Click options into LandformClassifier."""
    fine: float = int(fine_radius) if float(fine_radius).is_integer() else fine_radius

    try:
        parsed_radii = tuple(_parse_number_list(radii))
    except ValueError as exc:
        click.echo(f"Error: could not parse --radii: {exc}", err=True)
        sys.exit(1)

    try:
        config = LandformConfig(
            radii=parsed_radii,  # type: ignore[arg-type]
            fine_radius=fine,
            radius_units=units.lower(),  # type: ignore[arg-type]
            resample_factor=resample_factor,
            products=_parse_products(products),
            band=band,
        )
        region = _load_region(clip_geojson) if clip_geojson else None
        tool = LandformClassifier(
            input_path, output_dir, config, clip_region=region, verbose=verbose
        )
        tool.run()
    except LandformsError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    click.echo(f"\n{len(tool.written)} raster(s) written to: {output_dir}")
    for name, path in tool.written.items():
        click.echo(f"  {name}: {path.name}")
    if tool.result is not None:
        click.echo(tool.result.summary())


if __name__ == "__main__":
    main()
