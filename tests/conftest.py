import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtGui import QColor, QImage
from PySide6.QtWidgets import QApplication

from pagecrop import data_store
from pagecrop.errors import DocumentOpenError, RenderError
from pagecrop.models import EditorSettings
from pagecrop.render_worker import InlineRenderRunner
from pagecrop.session import EditorSession


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture(autouse=True)
def tmp_settings(tmp_path, monkeypatch):
    """Redirect settings reads/writes to a temporary directory."""
    path = tmp_path / "settings.json"
    monkeypatch.setattr(data_store, "SETTINGS_PATH", str(path))
    return path


class FakePage:
    def __init__(self, doc, page_num, width, height):
        self._doc = doc
        self.page_num = page_num
        self.intrinsic_width = width
        self.height = height

    def paint(self, scale):
        if self.page_num in self._doc.failing:
            raise RenderError(self.page_num)
        self._doc.painted.append(self.page_num)
        img = QImage(round(self.intrinsic_width * scale), round(self.height * scale),
                     QImage.Format.Format_RGB32)
        img.fill(QColor("white"))
        return img


class FakeDocument:
    def __init__(self, page_count=3, width=400.0, height=500.0):
        self.page_count = page_count
        self.width = width
        self.height = height
        self.painted = []
        self.failing = set()
        self.closed = False

    def get_page(self, page_num):
        return FakePage(self, page_num, self.width, self.height)

    def close(self):
        self.closed = True


class FakeRenderer:
    """Opens any bytes starting with %PDF as a FakeDocument."""

    def __init__(self, page_count=3, width=400.0, height=500.0):
        self.page_count = page_count
        self.width = width
        self.height = height
        self.documents = []

    @property
    def doc(self):
        return self.documents[-1]

    def open_document(self, data):
        if not data.startswith(b"%PDF"):
            raise DocumentOpenError("not a PDF")
        doc = FakeDocument(self.page_count, self.width, self.height)
        self.documents.append(doc)
        return doc


class ManualRunner:
    """Holds submitted jobs until the test runs them."""

    def __init__(self):
        self.jobs = []

    def submit(self, job, on_success, on_failure):
        self.jobs.append((job, on_success, on_failure))

    def run_next(self):
        job, on_success, on_failure = self.jobs.pop(0)
        try:
            result = job()
        except Exception as exc:
            on_failure(exc)
            return
        on_success(result)

    def run_all(self):
        while self.jobs:
            self.run_next()


@pytest.fixture()
def renderer():
    return FakeRenderer()


@pytest.fixture()
def manual_runner():
    return ManualRunner()


@pytest.fixture()
def make_session(renderer):
    """Build an EditorSession on the fake renderer; 800 px wide container."""
    def _make(runner=None, settings=None, container_width=800.0, device_pixel_ratio=1.0):
        return EditorSession(
            renderer,
            runner if runner is not None else InlineRenderRunner(),
            settings or EditorSettings(hi_dpr=False),
            container_width=lambda: container_width,
            device_pixel_ratio=lambda: device_pixel_ratio,
        )
    return _make
