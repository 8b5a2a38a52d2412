"""
Tests for the end-to-end pipeline, the LandformClassifier tool and the CLI.

The synthetic DEM is an inverted cone (a pit): its centre cell is flat,
fully enclosed and lower than every neighbour, so it must classify as a
valley floor at every scale.

Test classes:
    TestLandformConfig        Validation and radius resolution.
    TestDeriveLandforms       Pure pipeline invariants.
    TestLandformClassifier    File outputs and summary report.
    TestCli                   Click command wiring.
"""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import numpy.typing as npt
import pytest
import rasterio
from click.testing import CliRunner
from rasterio.crs import CRS
from rasterio.transform import from_origin
from shapely.geometry import box

from landform_classifier.classifier import (
    LANDFORM_CODES,
    bucket_hli,
    bucket_mean_tpi,
    bucket_slope,
    bucket_tpi,
    composite_signature,
    lookup_landform,
    remap_landforms,
    remap_landforms_simple,
)
from landform_classifier.cli import main
from landform_classifier.heat_load import calculate_hli
from landform_classifier.pipeline import (
    PRODUCTS,
    SUMMARY_FILENAME,
    LandformClassifier,
    LandformConfig,
    derive_landforms,
)
from landform_classifier.raster import ElevationRaster
from shared.python.exceptions import InputValidationError, KernelRadiusError

SMALL = LandformConfig(radii=(1, 3, 9), fine_radius=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _pit(size: int = 41) -> npt.NDArray[np.float64]:
    """Inverted cone rising one unit per cell away from the centre."""
    centre = size // 2
    r, c = np.mgrid[0:size, 0:size]
    return 100.0 + np.hypot(r - centre, c - centre)


def _make_dem(tmp_path: Path, values: npt.ArrayLike, name: str = "dem") -> Path:
    """Write a projected 30 m float32 GeoTIFF with -9999 nodata."""
    arr = np.where(np.isfinite(values), values, -9999.0).astype("float32")
    fpath = tmp_path / f"{name}.tif"
    profile = {
        "driver": "GTiff",
        "dtype": "float32",
        "count": 1,
        "height": arr.shape[0],
        "width": arr.shape[1],
        "crs": CRS.from_epsg(32611),
        "transform": from_origin(500000.0, 4000000.0, 30.0, 30.0),
        "nodata": -9999.0,
    }
    with rasterio.open(fpath, "w", **profile) as dst:
        dst.write(arr, 1)
    return fpath


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestLandformConfig:
    """Configuration validation and radius resolution."""

    def test_defaults_are_valid(self) -> None:
        LandformConfig().validate()

    def test_unknown_product(self) -> None:
        with pytest.raises(InputValidationError, match="Unknown product"):
            LandformConfig(products=["landforms", "curvature"]).validate()

    def test_unknown_units(self) -> None:
        with pytest.raises(InputValidationError, match="radius_units"):
            LandformConfig(radius_units="feet").validate()  # type: ignore[arg-type]

    @pytest.mark.parametrize("radii", [(9, 3, 27), (3, 9), (0, 3, 9)])
    def test_bad_cell_radii(self, radii: tuple[int, ...]) -> None:
        with pytest.raises(KernelRadiusError):
            LandformConfig(radii=radii).validate()  # type: ignore[arg-type]

    def test_bad_metre_radii(self) -> None:
        with pytest.raises(KernelRadiusError):
            LandformConfig(radii=(-90.0, 270.0, 810.0), radius_units="meters").validate()
        with pytest.raises(KernelRadiusError, match="increasing"):
            LandformConfig(radii=(810.0, 270.0, 90.0), radius_units="meters").validate()

    def test_bad_resample_factor(self) -> None:
        with pytest.raises(InputValidationError, match="Resample factor"):
            LandformConfig(resample_factor=0).validate()

    def test_metres_resolved_with_cell_size(self) -> None:
        raster = ElevationRaster(np.zeros((5, 5)), transform=from_origin(0, 150, 30.0, 30.0))
        config = LandformConfig(radii=(90.0, 270.0, 810.0), fine_radius=300.0, radius_units="meters")
        assert config.resolved_radii(raster) == ((3, 9, 27), 10)


# ---------------------------------------------------------------------------
# Pure pipeline
# ---------------------------------------------------------------------------

class TestDeriveLandforms:
    """End-to-end computation on in-memory grids."""

    def test_pit_centre_is_valley(self) -> None:
        result = derive_landforms(_pit(), SMALL)
        assert result.slope[20, 20] == pytest.approx(0.0)
        assert result.aspect[20, 20] == 180.0
        assert result.mean_tpi[20, 20] < -1.2
        assert result.landforms[20, 20] == 41
        assert result.landforms_simple[20, 20] == 3

    def test_south_facing_pit_traces_through_every_stage(self) -> None:
        """10° south-facing plane with one cell lowered by 11.25 m at (5, 5).

        Horn ignores the centre cell, so slope and aspect at (5, 5) are
        those of the plane while the raw TPI sees the full drop.
        """
        rows = np.arange(21, dtype=np.float64)[:, None]
        dem = np.repeat(100.0 - np.tan(np.radians(10.0)) * rows, 21, axis=1)
        dem[5, 5] -= 11.25
        result = derive_landforms(dem, SMALL)

        slope, aspect = result.slope[5, 5], result.aspect[5, 5]
        assert slope == pytest.approx(10.0, abs=1e-9)
        assert aspect == pytest.approx(180.0, abs=1e-9)
        assert result.hli[5, 5] == pytest.approx(float(calculate_hli(slope, aspect)))
        assert result.tpi[5, 5] == pytest.approx(-10.0)
        assert result.mean_tpi[5, 5] < -1.2

        assert bucket_slope([slope]).tolist() == [1000]
        assert bucket_hli([result.hli[5, 5]]).tolist() == [300]
        assert bucket_mean_tpi([result.mean_tpi[5, 5]]).tolist() == [10]
        assert bucket_tpi([result.tpi[5, 5]]).tolist() == [1]

        composite = composite_signature(
            result.slope, result.hli, result.mean_tpi, result.tpi
        )[5, 5]
        assert composite == 1311
        assert result.landforms[5, 5] == lookup_landform(composite) == 41

    def test_result_is_hashable_by_identity(self) -> None:
        first = derive_landforms(_pit(11), SMALL)
        second = derive_landforms(_pit(11), SMALL)
        assert first == first
        assert first != second
        assert len({first, second}) == 2

    def test_products_are_aligned(self) -> None:
        result = derive_landforms(_pit(), SMALL)
        for attr in ("slope", "aspect", "hli", "tpi", "mean_tpi", "landforms",
                     "landforms_dense", "landforms_simple"):
            assert getattr(result, attr).shape == (41, 41)
        assert len(result.standardized_tpis) == 3
        assert result.radii == (1, 3, 9)
        assert result.fine_radius == 1

    def test_codes_come_from_the_table(self) -> None:
        rng = np.random.default_rng(11)
        dem = np.cumsum(rng.normal(size=(40, 40)), axis=0) * 5.0 + 1000.0
        result = derive_landforms(dem, SMALL)

        codes = result.landforms[np.isfinite(result.landforms)]
        assert set(np.unique(codes).astype(int)) <= set(LANDFORM_CODES)
        assert np.array_equal(result.landforms_dense, remap_landforms(result.landforms),
                              equal_nan=True)
        assert np.array_equal(result.landforms_simple, remap_landforms_simple(result.landforms),
                              equal_nan=True)

    def test_masked_cell_masks_every_product(self) -> None:
        dem = _pit()
        dem[10, 10] = np.nan
        result = derive_landforms(dem, SMALL)

        for arr in (result.slope, result.aspect, result.hli, result.tpi, result.mean_tpi,
                    result.landforms, result.landforms_dense, result.landforms_simple,
                    *result.standardized_tpis):
            assert np.isnan(arr[10, 10])
        assert np.isnan(result.slope[9:12, 9:12]).all()
        assert np.isfinite(result.tpi[10, 11])

    def test_boundary_is_unclassified(self) -> None:
        result = derive_landforms(_pit(), SMALL)
        assert np.isnan(result.landforms[0, :]).all()
        assert np.isnan(result.landforms[:, -1]).all()

    def test_resample_factor(self) -> None:
        config = LandformConfig(radii=(1, 3, 9), fine_radius=1, resample_factor=2)
        result = derive_landforms(_pit(), config)
        assert result.elevation.shape == (20, 20)
        assert result.landforms.shape == (20, 20)

    def test_frequencies_and_report(self) -> None:
        result = derive_landforms(_pit(), SMALL)
        freq = result.frequencies()
        assert freq[41] >= 1
        report = result.to_report()
        assert report["classified_pixels"] == sum(freq.values())
        assert report["valid_pixels"] == 41 * 41
        assert "Valley" in result.summary()


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------

class TestLandformClassifier:
    """GeoTIFF outputs and the JSON summary of the tool."""

    def test_writes_every_product_and_summary(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit())
        out_dir = tmp_path / "out"

        tool = LandformClassifier(dem, out_dir, SMALL)
        tool.run()

        for product in PRODUCTS:
            assert (out_dir / f"{product}.tif").exists()
        assert set(tool.written) == set(PRODUCTS)

        with rasterio.open(out_dir / "landforms.tif") as src:
            arr = src.read(1)
            assert src.dtypes[0] == "uint8"
            assert src.nodata == 255
            assert src.crs == CRS.from_epsg(32611)
        assert arr[20, 20] == 41
        assert arr[0, 0] == 255

        report = json.loads((out_dir / SUMMARY_FILENAME).read_text())
        assert report["radii"] == [1, 3, 9]
        assert report["config"]["fine_radius"] == 1
        assert any(entry["code"] == 41 for entry in report["landforms"])

    def test_product_subset(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(21))
        out_dir = tmp_path / "out"
        config = LandformConfig(radii=(1, 3, 9), fine_radius=1, products=["landforms_simple"])

        LandformClassifier(dem, out_dir, config).run()

        assert sorted(p.name for p in out_dir.iterdir()) == [
            SUMMARY_FILENAME,
            "landforms_simple.tif",
        ]

    def test_clip_region(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit())
        # Cells 10..29 in both directions around the pit centre.
        region = box(500000.0 + 300.0, 4000000.0 - 900.0, 500000.0 + 900.0, 4000000.0 - 300.0)

        tool = LandformClassifier(dem, tmp_path / "out", SMALL, clip_region=region)
        tool.run()

        assert tool.result is not None
        assert tool.result.elevation.shape == (20, 20)

    def test_tool_writes_into_output_path(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(11))
        tool = LandformClassifier(dem, tmp_path / "out", SMALL)
        assert not hasattr(tool, "output_dir")

        tool.run()

        assert all(path.parent == tool.output_path for path in tool.written.values())
        assert (tool.output_path / SUMMARY_FILENAME).exists()

    def test_missing_input(self, tmp_path: Path) -> None:
        tool = LandformClassifier(tmp_path / "missing.tif", tmp_path / "out", SMALL)
        with pytest.raises(InputValidationError, match="not found"):
            tool.run()

    def test_bad_config_fails_before_processing(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(11))
        tool = LandformClassifier(dem, tmp_path / "out", LandformConfig(radii=(3, 3, 3)))
        with pytest.raises(KernelRadiusError):
            tool.run()
        assert tool.result is None


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestCli:
    """geo-landforms command wiring and exit codes."""

    def test_happy_path(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(21))
        out_dir = tmp_path / "out"

        result = CliRunner().invoke(
            main,
            ["-i", str(dem), "-o", str(out_dir), "--radii", "1,3,9", "--fine-radius", "1",
             "--products", "landforms,hli"],
        )

        assert result.exit_code == 0, result.output
        assert (out_dir / "landforms.tif").exists()
        assert (out_dir / "hli.tif").exists()
        assert not (out_dir / "slope.tif").exists()
        assert "2 raster(s) written" in result.output

    def test_metre_radii(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(21))
        result = CliRunner().invoke(
            main,
            ["-i", str(dem), "-o", str(tmp_path / "out"), "--radii", "30,90,270",
             "--fine-radius", "30", "--units", "meters"],
        )
        assert result.exit_code == 0, result.output
        report = json.loads((tmp_path / "out" / SUMMARY_FILENAME).read_text())
        assert report["radii"] == [1, 3, 9]

    def test_clip_geojson(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(21))
        region = box(500000.0 + 150.0, 4000000.0 - 450.0, 500000.0 + 450.0, 4000000.0 - 150.0)
        geojson = tmp_path / "aoi.geojson"
        geojson.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [{"type": "Feature", "properties": {}, "geometry": region.__geo_interface__}],
        }))

        result = CliRunner().invoke(
            main,
            ["-i", str(dem), "-o", str(tmp_path / "out"), "--radii", "1,3,9",
             "--fine-radius", "1", "--clip-geojson", str(geojson)],
        )
        assert result.exit_code == 0, result.output
        report = json.loads((tmp_path / "out" / SUMMARY_FILENAME).read_text())
        assert report["height"] == 10
        assert report["width"] == 10

    def test_invalid_radii_exit_code(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(11))
        result = CliRunner().invoke(
            main, ["-i", str(dem), "-o", str(tmp_path / "out"), "--radii", "9,3,27"]
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_unparseable_radii(self, tmp_path: Path) -> None:
        dem = _make_dem(tmp_path, _pit(11))
        result = CliRunner().invoke(
            main, ["-i", str(dem), "-o", str(tmp_path / "out"), "--radii", "a,b,c"]
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("[1, 2]", "does not contain a geometry"),
            ('{"type": "Feature", "geometry": null}', "does not contain a geometry"),
            ('{"type": "FeatureCollection", "features": {}}', "has no features"),
            ("{not json", "not valid JSON"),
        ],
    )
    def test_bad_clip_geojson(self, tmp_path: Path, content: str, message: str) -> None:
        dem = _make_dem(tmp_path, _pit(11))
        geojson = tmp_path / "aoi.geojson"
        geojson.write_text(content)

        result = CliRunner().invoke(
            main, ["-i", str(dem), "-o", str(tmp_path / "out"), "--clip-geojson", str(geojson)]
        )

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert message in result.output
        assert not (tmp_path / "out").exists()

    def test_processing_errors_are_not_reported_as_option_errors(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _fail(self: LandformClassifier) -> None:
            raise ValueError("numerical failure")

        monkeypatch.setattr(LandformClassifier, "process", _fail)
        dem = _make_dem(tmp_path, _pit(11))

        result = CliRunner().invoke(main, ["-i", str(dem), "-o", str(tmp_path / "out")])

        assert isinstance(result.exception, ValueError)
        assert "could not parse" not in result.output
