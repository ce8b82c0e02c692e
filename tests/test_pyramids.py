"""Tests for sub-window aware Gaussian and Laplacian pyramids."""

import logging
import math

import numpy as np
import pytest

from local_laplacian.core.pyramids import (
    GaussianPyramid,
    LaplacianPyramid,
    SubWindow,
    to_pixel_buffer,
)


@pytest.fixture
def image():
    return np.random.default_rng(7).random((64, 64))


def test_subwindow_halving_rounds_start_up_and_end_down():
    window = SubWindow(13, 52, 6, 47)
    assert window.halve() == SubWindow(7, 26, 3, 23)
    assert window.at_level(2) == SubWindow(4, 13, 2, 11)
    assert window.offsets() == (1, 0)
    assert window.halve().offsets() == (1, 1)
    assert window.shape == (40, 42)


def test_subwindow_full_image_never_vanishes():
    window = SubWindow.full(1, 5)
    assert window.at_level(6) == SubWindow(0, 0, 0, 0)


def test_subwindow_rejects_non_positive_extent():
    with pytest.raises(ValueError):
        SubWindow(4, 3, 0, 0)
    # A single odd row has no sample on the coarser lattice
    with pytest.raises(ValueError):
        SubWindow(3, 3, 0, 4).halve()


def test_to_pixel_buffer_validation():
    assert to_pixel_buffer(np.zeros((3, 4, 1), dtype=np.uint8)).shape == (3, 4)
    with pytest.raises(ValueError):
        to_pixel_buffer(np.zeros((3, 4, 2)))
    with pytest.raises(ValueError):
        to_pixel_buffer(np.zeros((0, 4)))


@pytest.mark.parametrize("shape", [(64, 64), (37, 50), (23, 9, 3)])
def test_gaussian_shape_invariant(shape):
    data = np.random.default_rng(0).random(shape)
    pyramid = GaussianPyramid(data, 3)
    assert len(pyramid) == 4
    assert pyramid[0].dtype == np.float64
    for k in range(3):
        rows, cols = pyramid[k].shape[:2]
        assert pyramid[k + 1].shape[:2] == (math.ceil(rows / 2), math.ceil(cols / 2))
        assert pyramid[k + 1].shape[2:] == pyramid[0].shape[2:]

    laplacian = LaplacianPyramid(data, 3)
    for k in range(4):
        assert laplacian[k].shape == pyramid[k].shape


def test_gaussian_levels_are_read_only(image):
    pyramid = GaussianPyramid(image, 2)
    with pytest.raises(ValueError):
        pyramid[1][0, 0] = 1.0
    # The input is copied, not aliased
    assert pyramid[0] is not image


def test_gaussian_level_index_errors(image):
    pyramid = GaussianPyramid(image, 2)
    with pytest.raises(IndexError):
        pyramid[3]
    with pytest.raises(IndexError):
        pyramid[-1]
    with pytest.raises(IndexError):
        pyramid.expand(5, 1)


def test_expand_clamps_times_to_level(image):
    pyramid = GaussianPyramid(image, 3)
    assert pyramid.expand(2, 10).shape == image.shape
    assert pyramid.expand(2, 1).shape == pyramid[1].shape
    assert pyramid.expand(2, 0) is pyramid[2]


def test_too_many_levels_warns_and_proceeds(caplog):
    with caplog.at_level(logging.WARNING, logger="local_laplacian.core.pyramids"):
        pyramid = GaussianPyramid(np.ones((4, 6)), 4)
    assert "Too many levels" in caplog.text
    assert pyramid[4].shape == (1, 1)
    np.testing.assert_allclose(pyramid[4], 1.0)


def test_too_many_levels_on_a_crop_is_not_a_warning(caplog):
    crop = np.ones((3, 9))
    with caplog.at_level(logging.DEBUG, logger="local_laplacian.core.pyramids"):
        pyramid = GaussianPyramid(crop, 3, SubWindow(8, 10, 20, 28))
    assert pyramid[3].shape == (1, 1)
    records = [r for r in caplog.records if "Too many levels" in r.getMessage()]
    assert [r.levelno for r in records] == [logging.DEBUG]


def test_level_subwindow_tracks_halving(image):
    pyramid = GaussianPyramid(image[5:30, 3:40], 2, SubWindow(5, 29, 3, 39))
    assert pyramid.level_subwindow(0) == SubWindow(5, 29, 3, 39)
    assert pyramid.level_subwindow(2) == SubWindow(2, 7, 1, 9)
    assert pyramid.expand(2, 2).shape == (25, 37)
    with pytest.raises(IndexError):
        pyramid.level_subwindow(3)


def test_subwindow_must_match_image(image):
    with pytest.raises(ValueError):
        GaussianPyramid(image, 2, SubWindow(0, 10, 0, 10))


@pytest.mark.parametrize("num_levels", [0, 1, 3, 6])
def test_laplacian_round_trip_full_image(image, num_levels):
    pyramid = LaplacianPyramid(image, num_levels)
    np.testing.assert_allclose(pyramid.reconstruct(), image, atol=1e-9)


@pytest.mark.parametrize("r0, c0", [(13, 6), (12, 7), (11, 9), (10, 4)])
def test_laplacian_round_trip_subwindow(image, r0, c0):
    crop = image[r0:r0 + 27, c0:c0 + 30]
    window = SubWindow(r0, r0 + 26, c0, c0 + 29)
    pyramid = LaplacianPyramid(crop, 3, window)
    assert pyramid.subwindow == window
    np.testing.assert_allclose(pyramid.reconstruct(), crop, atol=1e-9)


def test_laplacian_round_trip_three_channel():
    data = np.random.default_rng(3).random((21, 34, 3))
    pyramid = LaplacianPyramid(data, 4)
    assert pyramid.channels == 3
    np.testing.assert_allclose(pyramid.reconstruct(), data, atol=1e-9)


@pytest.mark.parametrize("r0, c0", [(13, 7), (13, 6), (12, 7), (12, 6)])
def test_subwindow_pyramid_agrees_with_full_image_pyramid(image, r0, c0):
    r1, c1 = r0 + 39, c0 + 41
    full = GaussianPyramid(image, 3)
    window = SubWindow(r0, r1, c0, c1)
    sub = GaussianPyramid(image[r0:r1 + 1, c0:c1 + 1], 3, window)

    for k in range(4):
        level_window = window.at_level(k)
        assert sub.level_subwindow(k) == level_window
        assert sub[k].shape == level_window.shape

        # Only positions whose support stays inside the crop are comparable
        margin = 2 * ((1 << k) - 1)
        rows = [g for g in range(level_window.row_start, level_window.row_end + 1)
                if (g << k) - r0 >= margin and r1 - (g << k) >= margin]
        cols = [g for g in range(level_window.col_start, level_window.col_end + 1)
                if (g << k) - c0 >= margin and c1 - (g << k) >= margin]
        assert rows and cols

        local = sub[k][np.ix_([g - level_window.row_start for g in rows],
                              [g - level_window.col_start for g in cols])]
        np.testing.assert_allclose(local, full[k][np.ix_(rows, cols)], atol=1e-12)


def test_misaligned_subwindow_disagrees_with_full_image_pyramid(image):
    r0 = 13
    full = GaussianPyramid(image, 1)
    crop = image[r0:r0 + 30, 10:40]
    # Built as if the crop started at an even row
    wrong = GaussianPyramid(crop, 1)
    right = GaussianPyramid(crop, 1, SubWindow(r0, r0 + 29, 10, 39))

    first_row = (r0 + 1) // 2
    assert not np.allclose(wrong[1][4:8, 4:8], full[1][first_row + 4:first_row + 8, 9:13])
    np.testing.assert_allclose(right[1][4:8, 4:8], full[1][first_row + 4:first_row + 8, 9:13])


def test_blank_pyramid_shapes():
    pyramid = LaplacianPyramid.blank(37, 50, 3, channels=3)
    assert [pyramid[k].shape for k in range(4)] == [
        (37, 50, 3), (19, 25, 3), (10, 13, 3), (5, 7, 3)
    ]
    assert pyramid.num_levels == 3
    assert pyramid.is_writable
    assert not pyramid.is_complete


def test_blank_pyramid_requires_every_coefficient(image):
    reference = LaplacianPyramid(image, 2)
    pyramid = LaplacianPyramid.blank(64, 64, 2)
    pyramid.set_level(2, reference[2])
    pyramid.set_level(1, reference[1])
    for y in range(64):
        for x in range(64):
            if (y, x) != (5, 5):
                pyramid.set_coefficient(0, y, x, reference[0][y, x])

    with pytest.raises(RuntimeError):
        pyramid.reconstruct()

    pyramid.set_coefficient(0, 5, 5, reference[0][5, 5])
    assert pyramid.is_complete
    np.testing.assert_allclose(pyramid.reconstruct(), image, atol=1e-9)


def test_blank_pyramid_write_validation():
    pyramid = LaplacianPyramid.blank(8, 8, 1, channels=3)
    with pytest.raises(ValueError):
        pyramid.set_coefficient(0, 0, 0, 0.5)
    with pytest.raises(ValueError):
        pyramid.set_level(1, np.zeros((4, 4)))
    with pytest.raises(IndexError):
        pyramid.set_coefficient(2, 0, 0, np.zeros(3))
    # Levels handed out for reading cannot be written around the tracking
    with pytest.raises(ValueError):
        pyramid[0][0, 0] = 1.0
    with pytest.raises(ValueError):
        LaplacianPyramid.blank(8, 8, 1, channels=2)


def test_derived_pyramid_is_read_only(image):
    pyramid = LaplacianPyramid(image, 2)
    assert pyramid.is_complete
    with pytest.raises(TypeError):
        pyramid.set_coefficient(0, 0, 0, 1.0)
    with pytest.raises(TypeError):
        pyramid.set_level(2, pyramid[2])


def test_reconstruct_does_not_mutate_levels(image):
    pyramid = LaplacianPyramid(image, 3)
    before = [pyramid[k].copy() for k in range(4)]
    pyramid.reconstruct()
    for k in range(4):
        np.testing.assert_array_equal(pyramid[k], before[k])


@pytest.mark.parametrize("rows, cols, base, expected", [
    (64, 64, 30, 2),
    (512, 768, 30, 5),
    (30, 100, 30, 1),
    (1, 1, 30, 5),
    (1, 200, 1, 1),
])
def test_get_level_count(rows, cols, base, expected):
    assert LaplacianPyramid.get_level_count(rows, cols, base) == expected


def test_get_level_count_rejects_empty():
    with pytest.raises(ValueError):
        LaplacianPyramid.get_level_count(0, 10, 30)


def test_single_pixel_wide_image_round_trip():
    column = np.linspace(0.0, 1.0, 17).reshape(17, 1)
    pyramid = LaplacianPyramid(column, 4)
    assert pyramid[4].shape == (2, 1)
    np.testing.assert_allclose(pyramid.reconstruct(), column, atol=1e-9)

    pixel = LaplacianPyramid(np.array([[0.5]]), 3)
    assert pixel[3].shape == (1, 1)
    np.testing.assert_allclose(pixel.reconstruct(), [[0.5]])


def test_str_lists_level_sizes(image):
    text = str(GaussianPyramid(image[:, :40], 2))
    assert text.splitlines() == [
        "Gaussian Pyramid:",
        "Level 0: 40 x 64",
        "Level 1: 20 x 32",
        "Level 2: 10 x 16",
    ]
