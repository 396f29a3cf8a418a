"""Tests for the quad_mosaic composition engine."""

from __future__ import annotations

import numpy as np
import pytest

from quad_mosaic import composer
from quad_mosaic.color_utils import color_signature, rgb_to_lab, to_color_space
from quad_mosaic.composer import (
    compose_parallel,
    compose_region,
    is_leaf,
    plan_leaves,
    resize_tile,
)
from quad_mosaic.config import MosaicConfig
from quad_mosaic.engine import MosaicEngine, compose
from quad_mosaic.errors import (
    EmptyPaletteError,
    EmptyRegionError,
    InvalidPixelBufferError,
    MosaicError,
)
from quad_mosaic.palette import Palette, Tile, solid_tile
from quad_mosaic.region import Region

RED = (255, 0, 0)
BLUE = (0, 0, 255)
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)

# -- Fixtures ----------------------------------------------------------


def solid(w: int, h: int, color: tuple[int, ...]) -> np.ndarray:
    return np.full((h, w, len(color)), color, dtype=np.uint8)


@pytest.fixture
def red_blue() -> Palette:
    return Palette([solid_tile("red", RED), solid_tile("blue", BLUE)])


@pytest.fixture
def random_palette() -> Palette:
    rng = np.random.default_rng(7)
    tiles = [
        Tile.from_pixels(f"dali{i}", rng.integers(0, 256, size=(12, 9, 3), dtype=np.uint8))
        for i in range(8)
    ]
    tiles += [solid_tile(f"solid{i}", tuple(int(c) for c in rng.integers(0, 256, 3)))
              for i in range(8)]
    return Palette(tiles)


@pytest.fixture
def photo() -> np.ndarray:
    """Synthetic non-square target with odd dimensions."""
    rng = np.random.default_rng(456)
    return rng.integers(0, 256, size=(47, 63, 3), dtype=np.uint8)


# -- Config ------------------------------------------------------------

class TestConfig:
    def test_defaults(self) -> None:
        cfg = MosaicConfig()
        assert cfg.leaf_threshold == 10
        assert cfg.color_space == "rgb"
        assert cfg.workers == 1

    def test_frozen(self) -> None:
        cfg = MosaicConfig()
        with pytest.raises(AttributeError):
            cfg.leaf_threshold = 4  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"leaf_threshold": 0}, {"leaf_threshold": 1},
            {"workers": 0}, {"color_space": "hsv"},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            MosaicEngine(MosaicConfig(**kwargs))


# -- Colour signature --------------------------------------------------

class TestSignature:
    @pytest.mark.parametrize("size", [(1, 1), (3, 7), (64, 5)])
    def test_uniform(self, size: tuple[int, int]) -> None:
        assert color_signature(solid(*size, (12, 34, 56))) == (12, 34, 56)

    def test_truncating_average(self) -> None:
        pixels = np.array([[BLACK, WHITE]], dtype=np.uint8)
        assert color_signature(pixels) == (127, 127, 127)

    def test_floor_division(self) -> None:
        pixels = np.array([[(1, 2, 3), (2, 2, 2), (2, 2, 2)]], dtype=np.uint8)
        # sums 5, 6, 7 over 3 pixels
        assert color_signature(pixels) == (1, 2, 2)

    def test_region_view(self) -> None:
        pixels = np.array([[BLACK, WHITE], [BLACK, RED]], dtype=np.uint8)
        assert color_signature(pixels, Region(1, 0, 1, 1)) == WHITE
        assert color_signature(pixels, Region(1, 0, 1, 2)) == (255, 127, 127)

    def test_no_overflow(self) -> None:
        assert color_signature(solid(300, 300, WHITE)) == WHITE

    def test_alpha_ignored(self) -> None:
        pixels = solid(4, 4, (10, 20, 30, 0))
        assert color_signature(pixels) == (10, 20, 30)

    @pytest.mark.parametrize("region", [Region(0, 0, 0, 5), Region(0, 0, 5, 0)])
    def test_empty_region(self, region: Region) -> None:
        with pytest.raises(EmptyRegionError):
            color_signature(solid(5, 5, RED), region)

    def test_empty_array(self) -> None:
        with pytest.raises(EmptyRegionError):
            color_signature(np.zeros((0, 4, 3), dtype=np.uint8))


# -- Colour spaces -----------------------------------------------------

class TestColorSpaces:
    def test_lab_shape(self) -> None:
        lab = rgb_to_lab(np.array([RED, BLUE], dtype=np.uint8))
        assert lab.shape == (2, 3)

    def test_rgb_passthrough(self) -> None:
        points = to_color_space(np.array([RED], dtype=np.uint8), "rgb")
        np.testing.assert_array_equal(points, [[255.0, 0.0, 0.0]])

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            to_color_space(np.array([RED]), "hsv")


# -- Palette -----------------------------------------------------------

class TestPalette:
    def test_tie_keeps_first_enumerated(self) -> None:
        palette = Palette([
            solid_tile("black", BLACK),
            solid_tile("white", WHITE),
            solid_tile("grey", (10, 10, 10)),
        ])
        assert palette.nearest((5, 5, 5)).name == "black"

    def test_tie_depends_on_order(self) -> None:
        palette = Palette([solid_tile("grey", (10, 10, 10)), solid_tile("black", BLACK)])
        assert palette.nearest((5, 5, 5)).name == "grey"

    def test_strictly_closer_wins(self) -> None:
        palette = Palette([solid_tile("white", WHITE), solid_tile("black", BLACK)])
        assert palette.nearest((5, 5, 5)).name == "black"
        assert palette.nearest_index((250, 250, 250)) == 0

    def test_duplicate_signatures(self) -> None:
        palette = Palette([solid_tile("a", RED), solid_tile("b", RED)])
        assert palette.nearest(RED).name == "a"

    def test_lab_matching(self) -> None:
        palette = Palette(
            [solid_tile("red", RED), solid_tile("blue", BLUE)], color_space="lab",
        )
        assert palette.nearest((240, 20, 10)).name == "red"
        assert palette.nearest((10, 20, 230)).name == "blue"

    def test_empty(self) -> None:
        palette = Palette([])
        assert len(palette) == 0
        with pytest.raises(EmptyPaletteError):
            palette.nearest(RED)

    def test_signature_computed_on_load(self) -> None:
        pixels = np.array([[BLACK, WHITE]], dtype=np.uint8)
        tile = Tile.from_pixels("dali0", pixels)
        assert tile.signature == (127, 127, 127)
        assert (tile.width, tile.height) == (2, 1)

    def test_tiles_are_immutable(self) -> None:
        pixels = solid(3, 3, RED)
        tile = Tile.from_pixels("dali0", pixels)
        pixels[:] = 0
        assert tile.signature == RED
        assert tile.pixels[0, 0].tolist() == list(RED)
        assert not tile.pixels.flags.writeable

    def test_from_images_keeps_order(self) -> None:
        palette = Palette.from_images(
            [("dali0", solid(2, 2, BLUE)), ("dali1", solid(2, 2, RED))],
        )
        assert [t.name for t in palette] == ["dali0", "dali1"]
        np.testing.assert_array_equal(palette.signatures, [BLUE, RED])

    @pytest.mark.parametrize(
        "pixels",
        [
            np.zeros((4, 4), dtype=np.uint8),
            np.zeros((4, 4, 2), dtype=np.uint8),
            np.zeros((4, 4, 3), dtype=np.float32),
            np.full((4, 4, 3), 300, dtype=np.int32),
        ],
    )
    def test_invalid_pixels(self, pixels: np.ndarray) -> None:
        with pytest.raises(InvalidPixelBufferError):
            Tile.from_pixels("bad", pixels)


# -- Regions & subdivision ---------------------------------------------

class TestSubdivision:
    def test_threshold_boundary(self) -> None:
        assert not is_leaf(Region(0, 0, 10, 10))
        assert is_leaf(Region(0, 0, 9, 10))
        assert is_leaf(Region(0, 0, 10, 9))

    def test_either_dimension_triggers(self) -> None:
        assert is_leaf(Region(0, 0, 1000, 9))
        assert is_leaf(Region(0, 0, 3, 500))
        assert plan_leaves(1000, 9) == [Region(0, 0, 1000, 9)]

    def test_quadrants_absorb_remainder(self) -> None:
        ul, ur, ll, lr = Region(2, 4, 11, 7).quadrants()
        assert ul == Region(2, 4, 5, 3)
        assert ur == Region(7, 4, 6, 3)
        assert ll == Region(2, 7, 5, 4)
        assert lr == Region(7, 7, 6, 4)

    def test_ten_by_ten_splits_once(self) -> None:
        leaves = plan_leaves(10, 10)
        assert leaves == [
            Region(0, 0, 5, 5), Region(5, 0, 5, 5),
            Region(0, 5, 5, 5), Region(5, 5, 5, 5),
        ]

    @pytest.mark.parametrize("w, h", [(1, 1), (10, 10), (21, 13), (63, 47), (100, 3), (128, 40)])
    def test_leaves_tile_exactly(self, w: int, h: int) -> None:
        coverage = np.zeros((h, w), dtype=np.int32)
        for leaf in plan_leaves(w, h):
            assert is_leaf(leaf)
            assert not leaf.is_empty
            coverage[leaf.slices] += 1
        assert (coverage == 1).all()

    def test_custom_threshold(self) -> None:
        assert len(plan_leaves(16, 16, threshold=5)) == 16

    @pytest.mark.parametrize("w, h", [(1, 1), (2, 2), (3, 5), (7, 4), (17, 9)])
    def test_smallest_threshold_has_no_empty_leaves(self, w: int, h: int) -> None:
        leaves = plan_leaves(w, h, threshold=2)
        assert all(not leaf.is_empty for leaf in leaves)
        assert sum(leaf.area for leaf in leaves) == w * h

    def test_smallest_threshold_composes(self, red_blue: Palette) -> None:
        mosaic = MosaicEngine(MosaicConfig(leaf_threshold=2)).compose(solid(5, 3, RED), red_blue)
        assert (mosaic == RED).all()


# -- Tile resizing -----------------------------------------------------

class TestResize:
    def test_no_new_colours(self) -> None:
        checker = np.zeros((4, 4, 3), dtype=np.uint8)
        checker[::2, ::2] = RED
        checker[1::2, 1::2] = BLUE
        tile = Tile.from_pixels("checker", checker)
        resized = resize_tile(tile, 13, 7)
        assert resized.shape == (7, 13, 3)
        colours = {tuple(c) for c in resized.reshape(-1, 3)}
        assert colours <= {tuple(c) for c in checker.reshape(-1, 3)}

    def test_rgb_tile_into_rgba(self) -> None:
        resized = resize_tile(solid_tile("red", RED), 3, 2, channels=4)
        assert resized.shape == (2, 3, 4)
        assert (resized[..., 3] == 255).all()
        assert (resized[..., :3] == RED).all()


# -- Composition -------------------------------------------------------

class TestCompose:
    def test_solid_red(self, red_blue: Palette) -> None:
        mosaic = compose(solid(20, 20, RED), red_blue)
        assert mosaic.shape == (20, 20, 3)
        assert (mosaic == RED).all()

    @pytest.mark.parametrize("w, h", [(1, 1), (1, 50), (50, 1), (10, 10), (33, 17), (64, 64)])
    def test_output_dimensions(self, w: int, h: int, random_palette: Palette) -> None:
        rng = np.random.default_rng(w * 100 + h)
        image = rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)
        assert compose(image, random_palette).shape == (h, w, 3)

    def test_two_tone(self) -> None:
        image = np.zeros((20, 40, 3), dtype=np.uint8)
        image[:, 20:] = WHITE
        palette = Palette([solid_tile("black", BLACK), solid_tile("white", WHITE)])
        np.testing.assert_array_equal(compose(image, palette), image)

    def test_empty_palette(self) -> None:
        with pytest.raises(EmptyPaletteError):
            compose(solid(20, 20, RED), Palette([]))

    @pytest.mark.parametrize("shape", [(0, 5, 3), (5, 0, 3)])
    def test_empty_image(self, shape: tuple[int, int, int], red_blue: Palette) -> None:
        with pytest.raises(EmptyRegionError):
            compose(np.zeros(shape, dtype=np.uint8), red_blue)

    def test_invalid_image(self, red_blue: Palette) -> None:
        with pytest.raises(InvalidPixelBufferError):
            compose(np.zeros((5, 5), dtype=np.uint8), red_blue)

    def test_input_untouched(self, photo: np.ndarray, random_palette: Palette) -> None:
        before = photo.copy()
        compose(photo, random_palette)
        np.testing.assert_array_equal(photo, before)

    def test_rgba_preserved(self, red_blue: Palette) -> None:
        mosaic = compose(solid(12, 12, (250, 5, 5, 128)), red_blue)
        assert mosaic.shape == (12, 12, 4)
        assert (mosaic[..., :3] == RED).all()

    def test_every_leaf_filled_from_palette(
        self, photo: np.ndarray, random_palette: Palette,
    ) -> None:
        mosaic = compose(photo, random_palette)
        for leaf in plan_leaves(63, 47):
            tile = random_palette.nearest(color_signature(photo, leaf))
            expected = resize_tile(tile, leaf.width, leaf.height)
            np.testing.assert_array_equal(mosaic[leaf.slices], expected)

    def test_region_writes_stay_inside(self, red_blue: Palette) -> None:
        image = solid(30, 30, BLUE)
        out = np.zeros_like(image)
        region = Region(10, 5, 12, 11)
        compose_region(image, red_blue, region, out)
        assert (out[region.slices] == BLUE).all()
        mask = np.ones((30, 30), dtype=bool)
        mask[region.slices] = False
        assert (out[mask] == 0).all()


# -- Parallel composition ----------------------------------------------

class TestParallel:
    def test_matches_serial(self, photo: np.ndarray, random_palette: Palette) -> None:
        serial = MosaicEngine(MosaicConfig(workers=1)).compose(photo, random_palette)
        threaded = MosaicEngine(MosaicConfig(workers=4)).compose(photo, random_palette)
        np.testing.assert_array_equal(serial, threaded)

    def test_first_error_surfaced(
        self, monkeypatch: pytest.MonkeyPatch, red_blue: Palette,
    ) -> None:
        calls: list[Region] = []

        def failing_leaf(image, palette, region, out):
            calls.append(region)
            raise MosaicError(f"leaf at {region.x},{region.y}")

        monkeypatch.setattr(composer, "fill_leaf", failing_leaf)
        image = solid(40, 40, RED)
        out = np.zeros_like(image)
        with pytest.raises(MosaicError, match="leaf at 0,0"):
            compose_parallel(image, red_blue, Region.full(40, 40), out, workers=4)
        # every quadrant worker ran to its first failure
        assert len(calls) == 4
