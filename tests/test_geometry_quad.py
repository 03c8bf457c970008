"""
Pytest for quad contracts and geometry helpers.
Everything is built from small synthetic quads, no assets needed.
"""
from __future__ import annotations
import math

import numpy as np
import pytest

from docscan.core.contracts import Corner, Quadrilateral, Rect, Size
from docscan.geometry import affine
from docscan.geometry.quad import (
    apply,
    clamp_point,
    denormalize,
    is_within,
    move_corner,
    perimeter,
    scale_and_rotate,
    select_largest,
    to_coordinate_system,
    with_corner,
)

# ---------- Utilities ---------- #

def _rect_quad(x: float, y: float, w: float, h: float) -> Quadrilateral:
    return Quadrilateral([[x, y], [x + w, y], [x + w, y + h], [x, y + h]])

def _skewed_quad() -> Quadrilateral:
    return Quadrilateral([[100, 50], [400, 60], [420, 500], [90, 480]])

# ---------- Contracts ---------- #

def test_quad_corner_accessors_follow_storage_order():
    q = _skewed_quad()
    assert q.top_left == (100.0, 50.0)
    assert q.top_right == (400.0, 60.0)
    assert q.bottom_right == (420.0, 500.0)
    assert q.bottom_left == (90.0, 480.0)
    assert q.pts.shape == (4, 2)
    assert q.pts.dtype == np.float64

def test_quad_path_is_closed():
    path = _skewed_quad().path()
    assert path.shape == (5, 2)
    np.testing.assert_array_equal(path[0], path[-1])

def test_quad_equality_is_cornerwise_exact():
    a = _rect_quad(0, 0, 10, 10)
    assert a == _rect_quad(0, 0, 10, 10)
    assert a != _rect_quad(0, 0, 10, 10.000001)
    assert hash(a) == hash(_rect_quad(0, 0, 10, 10))

def test_quad_hash_ignores_signed_zero():
    a = Quadrilateral([[0.0, 0.0], [1, 0], [1, 1], [0, 1]])
    b = Quadrilateral([[-0.0, 0.0], [1, -0.0], [1, 1], [0, 1]])
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1

def test_quad_repr_prints_plain_floats():
    text = repr(_rect_quad(0, 0, 2, 3))
    assert "np.float64" not in text
    assert "top_left=(0.0, 0.0)" in text
    assert all(type(v) is float for corner in _rect_quad(0, 0, 2, 3).as_tuple() for v in corner)

def test_quad_rejects_bad_shapes():
    with pytest.raises(ValueError):
        Quadrilateral([[0, 0], [1, 0], [1, 1]])
    with pytest.raises(ValueError):
        Quadrilateral([0, 0, 1, 0, 1, 1, 0, 1, 2])
    flat = Quadrilateral([0, 0, 1, 0, 1, 1, 0, 1])
    assert flat == _rect_quad(0, 0, 1, 1)

def test_quad_points_are_read_only():
    q = _rect_quad(0, 0, 1, 1)
    with pytest.raises(ValueError):
        q.pts[0, 0] = 5.0

def test_as_polyline_shape_for_cv2():
    poly = _skewed_quad().as_polyline()
    assert poly.shape == (4, 1, 2)
    assert poly.dtype == np.int32

def test_size_clamped_replaces_zero_only():
    s = Size(0.0, 20.0).clamped()
    assert 0.0 < s.width < 1e-300
    assert s.height == 20.0

def test_rect_applying_returns_bounding_box():
    r = Rect.from_size(Size(4, 2)).applying(affine.rotation(math.pi / 2))
    assert r.x == pytest.approx(-2.0)
    assert r.y == pytest.approx(0.0)
    assert r.width == pytest.approx(2.0)
    assert r.height == pytest.approx(4.0)

# ---------- Geometry ---------- #

def test_apply_transforms_each_corner():
    q = apply(affine.translation(5, -3), _rect_quad(0, 0, 10, 10))
    assert q == _rect_quad(5, -3, 10, 10)

def test_perimeter_of_rectangle_and_triangle_like_quad():
    assert perimeter(_rect_quad(0, 0, 30, 40)) == pytest.approx(140.0)
    degenerate = Quadrilateral([[0, 0], [3, 0], [3, 4], [3, 4]])
    assert perimeter(degenerate) == pytest.approx(3 + 4 + 0 + 5)

@pytest.mark.parametrize("t", [0.0, 0.5, 6.0, 40.0])
def test_is_within_reflexive_for_identical_quads(t):
    a = _skewed_quad()
    b = Quadrilateral(np.array(a.pts))
    assert is_within(t, a, b)
    assert is_within(t, b, a)

def test_is_within_is_symmetric_and_uses_half_side():
    a = _rect_quad(0, 0, 100, 100)
    b = apply(affine.translation(3, -3), a)
    assert is_within(6, a, b) and is_within(6, b, a)
    assert not is_within(5.9, a, b) and not is_within(5.9, b, a)

def test_is_within_requires_all_four_corners():
    a = _rect_quad(0, 0, 100, 100)
    b = with_corner(a, Corner.BOTTOM_LEFT, (0, 130))
    assert not is_within(40, a, b)
    assert is_within(61, a, b)

def test_to_coordinate_system_flips_and_round_trips():
    q = _skewed_quad()
    flipped = to_coordinate_system(q, 720)
    assert flipped.top_left == (100.0, 670.0)
    assert to_coordinate_system(flipped, 720) == q

def test_scale_and_rotate_without_angle_is_per_axis_scale():
    q = _rect_quad(10, 20, 30, 40)
    out = scale_and_rotate(q, Size(100, 200), Size(400, 400))
    assert out == apply(affine.scale(4, 2), q)

def test_scale_and_rotate_without_angle_matches_scale_then_centre():
    q = _skewed_quad()
    from_size, to_size = Size(640, 480), Size(4032, 3024)
    scaled = affine.scale(to_size.width / from_size.width, to_size.height / from_size.height)
    bounds = Rect.from_size(from_size).applying(scaled)
    shift = affine.translate_transform(bounds, Rect.from_size(to_size))
    expected = apply(affine.compose(scaled, shift), q)
    np.testing.assert_allclose(scale_and_rotate(q, from_size, to_size, 0.0).pts, expected.pts)

def test_scale_and_rotate_quarter_turn_composes_scale_rotate_translate():
    from_size, to_size = Size(1920, 1080), Size(3024, 4032)
    q = _skewed_quad()
    scaled = affine.scale(3024 / 1080, 4032 / 1920)  # source axes swapped
    rotate = affine.rotation(math.pi / 2)
    bounds = Rect.from_size(from_size).applying(scaled).applying(rotate)
    shift = affine.translate_transform(bounds, Rect.from_size(to_size))
    expected = apply(affine.compose(scaled, rotate, shift), q)
    got = scale_and_rotate(q, from_size, to_size, math.pi / 2)
    np.testing.assert_allclose(got.pts, expected.pts, atol=1e-9)

def test_scale_and_rotate_quarter_turn_centres_full_frame_on_photo():
    from_size, to_size = Size(1920, 1080), Size(3024, 4032)
    out = scale_and_rotate(_rect_quad(0, 0, 1920, 1080), from_size, to_size, math.pi / 2)
    centre = (out.pts.min(axis=0) + out.pts.max(axis=0)) / 2
    np.testing.assert_allclose(centre, [1512.0, 2016.0], atol=1e-6)

def test_scale_and_rotate_half_turn_keeps_axes():
    from_size, to_size = Size(200, 100), Size(400, 200)
    out = scale_and_rotate(_rect_quad(0, 0, 200, 100), from_size, to_size, math.pi)
    np.testing.assert_allclose(np.sort(out.pts[:, 0]), [0, 0, 400, 400], atol=1e-9)
    np.testing.assert_allclose(np.sort(out.pts[:, 1]), [0, 0, 200, 200], atol=1e-9)

def test_scale_and_rotate_zero_source_does_not_divide_by_zero():
    q = _rect_quad(10, 20, 30, 40)
    out = scale_and_rotate(q, Size(0, 100), Size(50, 50))
    # the zero axis is clamped instead of raising; the other axis scales normally
    np.testing.assert_allclose(out.pts[:, 1], [10, 10, 30, 30])

def test_move_corner_clamps_to_bounds():
    q = _rect_quad(10, 10, 50, 50)
    moved = move_corner(q, Corner.TOP_RIGHT, (500, -20), Size(375, 812))
    assert moved.top_right == (375.0, 0.0)
    assert moved.top_left == q.top_left
    assert clamp_point((-1, 900), Size(375, 812)) == (0.0, 812.0)

def test_denormalize_scales_unit_quad_to_pixels():
    unit = _rect_quad(0.25, 0.5, 0.5, 0.25)
    assert denormalize(unit, Size(1920, 1080)) == _rect_quad(480, 540, 960, 270)

def test_select_largest_by_perimeter():
    small, big = _rect_quad(0, 0, 10, 10), _rect_quad(0, 0, 100, 50)
    assert select_largest([small, big, small]) is big
    assert select_largest([]) is None
    twin = _rect_quad(5, 5, 100, 50)
    assert select_largest([big, twin]) is big
