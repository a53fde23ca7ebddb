import pytest

from occmap.writer_interface import Color, MapWriter, MapWriterPlugin, Shape


class RecordingWriter(MapWriter):
    def __init__(self):
        self.paths = []
        self.objects = []

    def base_path_and_file_name(self):
        return "out/map"

    def draw_object_of_interest(self, coords, text, color, shape=Shape.CIRCLE):
        self.objects.append((tuple(coords), text, color, shape))

    def _render_path(self, start, points, color):
        self.paths.append((start, points, color))


def test_map_writer_is_abstract():
    with pytest.raises(TypeError):
        MapWriter()


def test_plugin_is_abstract():
    with pytest.raises(TypeError):
        MapWriterPlugin()


def test_draw_path_uses_default_color():
    writer = RecordingWriter()
    writer.draw_path((1, 2, 0), [(1, 2), (3, 4)])
    assert writer.paths == [((1.0, 2.0, 0.0), [(1.0, 2.0), (3.0, 4.0)], Color(120, 0, 240))]


def test_draw_path_passes_explicit_color():
    writer = RecordingWriter()
    color = Color(10, 20, 30)
    writer.draw_path((0.0, 0.0, 0.0), [], color)
    assert writer.paths[0][2] == color
    assert writer.paths[0][1] == []


@pytest.mark.parametrize("channels", [(-1, 0, 0), (0, 256, 0), (0, 0, 300)])
def test_color_rejects_out_of_range(channels):
    with pytest.raises(ValueError):
        Color(*channels)


def test_color_as_tuple_round_trip():
    color = Color(1, 2, 3)
    assert Color(*color.as_tuple()) == color