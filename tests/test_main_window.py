import io
import os
from pathlib import Path

import pytest
from PIL import Image

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

pytest.importorskip(
    "PySide6.QtWidgets",
    reason="PySide6 Qt bindings required for MainWindow tests",
    exc_type=ImportError,
)

from PySide6.QtWidgets import QApplication, QMessageBox  # noqa: E402

import image_stacker.main as main_module  # noqa: E402
from image_stacker.cache import ImageCache, override_cache  # noqa: E402
from image_stacker.controllers import MergeSession  # noqa: E402
from image_stacker.pipeline import MergeSuccess  # noqa: E402
from image_stacker.widgets.source_list import drop_row_to_index, pil_to_qpixmap  # noqa: E402
from image_stacker.working_set import RawFile, WorkingSet  # noqa: E402


@pytest.fixture(scope="module")
def qt_app() -> QApplication:
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture()
def window(qt_app, monkeypatch):
    monkeypatch.setattr(QMessageBox, "information", lambda *a, **k: None)
    monkeypatch.setattr(QMessageBox, "warning", lambda *a, **k: None)
    with override_cache(ImageCache(max_size=50, cleanup_threshold=1.0)):
        win = main_module.MainWindow()
        yield win
        win.close()


def _write_png(path: Path, size=(20, 10)) -> Path:
    Image.new("RGB", size, color="purple").save(path)
    return path


def test_window_starts_with_disabled_merge(window):
    assert window.source_list.count() == 0
    assert not window.control_panel.merge_button.isEnabled()
    assert window.control_panel.width_spin.value() == 780


def test_add_paths_populates_list(window, tmp_path):
    window.add_paths([str(_write_png(tmp_path / "a.png")), str(_write_png(tmp_path / "b.png"))])

    assert window.source_list.count() == 2
    assert window.control_panel.merge_button.isEnabled()
    assert "a.png" in window.source_list.item(0).text()


def test_capacity_error_is_shown_in_status(window, tmp_path):
    paths = [str(_write_png(tmp_path / f"{i}.png")) for i in range(11)]

    window.add_paths(paths)

    assert window.source_list.count() == 0
    assert "10" in window.status_label.text()


def test_width_and_format_controls_update_session(window):
    window.control_panel.width_spin.setValue(50)
    window.control_panel.format_combo.setCurrentIndex(
        window.control_panel.format_combo.findData("png")
    )

    assert window.session.settings.output_width == 50
    assert window.session.settings.output_format.value == "png"


def test_move_request_reorders_session(window, tmp_path, qt_app):
    window.add_paths([str(_write_png(tmp_path / n)) for n in ("A.png", "B.png", "C.png")])

    window.source_list.moveRequested.emit(0, 2)
    qt_app.processEvents()

    names = [e.display_name for e in window.session.entries()]
    assert names == ["B.png", "C.png", "A.png"]


def test_merge_success_writes_selected_file(window, tmp_path, monkeypatch):
    target = tmp_path / "out.jpeg"
    monkeypatch.setattr(window, "_select_save_path", lambda name: str(target))
    window.session.add_sources([RawFile("a.png", _png_bytes(), "image/png")])

    result = window.session.trigger_merge()
    assert isinstance(result, MergeSuccess)
    window._on_merge_succeeded(result)

    assert target.read_bytes() == result.data


def test_dropping_non_image_files_shows_no_skip_dialog(window, tmp_path, monkeypatch):
    shown = []
    monkeypatch.setattr(QMessageBox, "information", lambda *a, **k: shown.append(a))
    notes = tmp_path / "notes.txt"
    notes.write_text("hello")

    window.add_paths([str(notes), str(_write_png(tmp_path / "a.png"))])

    assert window.source_list.count() == 1
    assert shown == []


@pytest.mark.parametrize(
    "chosen, expected",
    [("photo.jpg", "photo.jpg"), ("photo.jpeg", "photo.jpeg"), ("photo", "photo.jpeg")],
)
def test_save_path_accepts_every_jpeg_extension(window, tmp_path, monkeypatch, chosen, expected):
    monkeypatch.setattr(
        main_module.QFileDialog,
        "getSaveFileName",
        lambda *a, **k: (str(tmp_path / chosen), ""),
    )

    assert window._select_save_path("merged-image.jpeg") == str((tmp_path / expected).resolve())


def test_save_path_rejects_mismatched_extension(window, tmp_path, monkeypatch):
    monkeypatch.setattr(
        main_module.QFileDialog,
        "getSaveFileName",
        lambda *a, **k: (str(tmp_path / "photo.jpg"), ""),
    )

    assert window._select_save_path("merged-image.png") is None


def test_merge_failure_shows_message(window):
    window._on_merge_failed("Could not decode image 'x.png'", "x.png")

    assert "x.png" in window.status_label.text()


def test_drop_row_to_index():
    # moving the first of three rows to the end: Qt reports row 3
    assert drop_row_to_index(0, 3) == 2
    assert drop_row_to_index(2, 0) == 0
    assert drop_row_to_index(1, 2) == 1


def test_pil_to_qpixmap_preserves_size(qt_app):
    pixmap = pil_to_qpixmap(Image.new("RGB", (12, 7), color="orange"))
    assert (pixmap.width(), pixmap.height()) == (12, 7)


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (30, 30), color="teal").save(buffer, format="PNG")
    return buffer.getvalue()


def test_merge_worker_reports_success_and_failure(qt_app):
    from image_stacker.workers import MergeWorker

    session = MergeSession(working_set=WorkingSet(preview_cache=ImageCache(max_size=50, cleanup_threshold=1.0)))
    events = []

    failing = MergeWorker(session)
    failing.signals.failed.connect(lambda message, name: events.append(("failed", message)))
    failing.signals.finished.connect(lambda: events.append(("finished", None)))
    failing.run()

    session.add_sources([RawFile("a.png", _png_bytes(), "image/png")])
    succeeding = MergeWorker(session)
    succeeding.signals.succeeded.connect(lambda result: events.append(("succeeded", result)))
    succeeding.run()

    kinds = [kind for kind, _ in events]
    assert kinds == ["failed", "finished", "succeeded"]
    assert events[2][1].mime_type == "image/jpeg"
