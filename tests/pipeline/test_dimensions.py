"""Tests for pipeline/render/dimensions.py"""

import pytest

from pipeline.render.dimensions import PageDimensions, image_size, resolve_dimensions
from tests.fakes import make_page_html, make_png


class TestResolveDimensions:

    def test_height_follows_aspect_ratio(self):
        content = make_page_html("A", make_png(100, 150))

        dims = resolve_dimensions(content)

        assert dims.width_mm == 210
        assert dims.height_mm == pytest.approx(315.0)

    def test_landscape_image(self):
        content = make_page_html("A", make_png(200, 100))

        dims = resolve_dimensions(content)

        assert dims.height_mm == pytest.approx(105.0)

    def test_no_image_falls_back_to_a4(self):
        dims = resolve_dimensions(b"<html><body>text only</body></html>")

        assert dims == PageDimensions(210.0, 297.0)

    def test_unreadable_image_falls_back_to_a4(self):
        content = b'<html><img src="data:image/png;base64,bm90IGFuIGltYWdl"></html>'

        dims = resolve_dimensions(content)

        assert dims == PageDimensions(210.0, 297.0)

    def test_relative_image_file(self, tmp_path):
        (tmp_path / "img.png").write_bytes(make_png(50, 100))
        content = b'<html><img class="page" src="img.png"></html>'

        assert image_size(content, base_dir=tmp_path) == (50, 100)
        assert resolve_dimensions(content, base_dir=tmp_path).height_mm == pytest.approx(420.0)

    def test_relative_image_without_base_dir(self):
        content = b'<html><img src="img.png"></html>'

        assert image_size(content) is None

    def test_css_sizes(self):
        dims = PageDimensions(210.0, 297.0)

        assert dims.width == "210.0mm"
        assert dims.height == "297.0mm"
