import math

import numpy as np
import pytest

from occmap.markers import Marker, MarkerAction, MarkerDrawer, MarkerType


@pytest.fixture
def sent():
    return []


@pytest.fixture
def drawer(sent):
    return MarkerDrawer(publish=sent.append)


def test_template_defaults(drawer):
    t = drawer.template
    assert t.frame_id == "map"
    assert t.ns == "marker"
    assert t.scale == (1.0, 1.0, 1.0)
    assert t.color == (1.0, 1.0, 1.0, 1.0)
    assert t.action is MarkerAction.ADD


def test_draw_point_ids_and_type(drawer):
    a = drawer.draw_point((1.5, -2.0))
    b = drawer.draw_point((3.0, 4.0))
    assert (a.id, b.id) == (0, 1)
    assert a.type is MarkerType.CUBE
    assert a.position[:2] == (1.5, -2.0)
    assert a.orientation[2:] == (0.0, 0.0)
    assert drawer.pending == [a, b]


def test_draw_arrow_orientation_unit(drawer):
    m = drawer.draw_arrow((1.0, 2.0, 0.7))
    assert m.type is MarkerType.ARROW
    z, w = m.orientation[2], m.orientation[3]
    assert math.isclose(z * z + w * w, 1.0)
    assert math.isclose(2 * math.atan2(z, w), 0.7)


def test_send_and_reset_publishes_and_restarts_ids(drawer, sent):
    drawer.draw_point((0.0, 0.0))
    drawer.draw_point((1.0, 1.0))
    batch = drawer.send_and_reset()
    assert sent == [batch]
    assert len(batch) == 2
    assert drawer.pending == []
    assert drawer.max_id == 2
    assert drawer.draw_point((2.0, 2.0)).id == 0
    assert drawer.all_markers == batch


def test_reset_publishes_deletions(drawer, sent):
    drawer.draw_point((0.0, 0.0))
    drawer.send_and_reset()
    deletions = drawer.reset()
    assert sent[-1] == deletions
    assert [m.action for m in deletions] == [MarkerAction.DELETE]
    assert drawer.all_markers == []


def test_add_marker_fills_id_and_namespace(drawer):
    drawer.set_namespace("map_server")
    auto = drawer.add_marker(Marker())
    kept = drawer.add_marker(Marker(id=42, ns="own"))
    assert auto.id == 0
    assert auto.ns == "map_server"
    assert kept.id == 42
    assert kept.ns == "own"


def test_add_markers_queues_all(drawer):
    drawer.add_markers([Marker(), Marker()])
    assert [m.id for m in drawer.pending] == [0, 1]


def test_set_color_scale_time_apply_to_new_markers(drawer):
    drawer.set_color(0.2, 0.3, 0.4, 0.5)
    drawer.set_scale(0.25)
    drawer.set_time(12.5)
    m = drawer.draw_point((0.0, 0.0))
    assert m.color == (0.2, 0.3, 0.4, 0.5)
    assert m.scale == (0.25, 0.25, 0.25)
    assert m.stamp == 12.5


def test_covariance_2d_scale_matches_eigenvalues(drawer):
    cov = np.array([[3.0, 1.0], [1.0, 2.0]])
    m = drawer.draw_covariance_2d((1.0, 2.0), cov)
    assert m.type is MarkerType.CYLINDER
    sx, sy, sz = m.scale
    # sum of eigenvalues is 5, product is 5
    assert math.isclose(sx**2 + sy**2, 5.0)
    assert math.isclose(sx**2 * sy**2, 5.0)
    assert sx <= sy
    assert sz == 0.001
    z, w = m.orientation[2], m.orientation[3]
    assert math.isclose(z * z + w * w, 1.0)


def test_covariance_3d_orientation_and_scale(drawer):
    cov = np.array([[4.0, 0.5, 0.0], [0.5, 2.0, 0.3], [0.0, 0.3, 1.0]])
    m = drawer.draw_covariance_3d((1.0, 2.0, 3.0), cov)
    assert m.type is MarkerType.SPHERE
    assert m.position == (1.0, 2.0, 3.0)
    assert m.color[0] == 0.0
    assert m.color[3] == 0.5
    sx, sy, sz = m.scale
    assert sx >= sy >= sz
    assert math.isclose(sx**2 + sy**2 + sz**2, 7.0)
    assert math.isclose(sum(c * c for c in m.orientation), 1.0)


def test_drawer_without_sink_still_returns_batch():
    drawer = MarkerDrawer()
    drawer.draw_arrow((0.0, 0.0, 0.0))
    assert len(drawer.send_and_reset()) == 1