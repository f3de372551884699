"""Main entry point for the pagecrop desktop app."""
import os
import sys
from typing import Mapping

from PySide6.QtGui import QAction
from PySide6.QtWidgets import QApplication, QFileDialog, QMainWindow, QMessageBox

from pagecrop import data_store
from pagecrop.models import CropBox, EditorSettings
from pagecrop.pdf_viewer import CropEditorPanel


class MainWindow(QMainWindow):
    def __init__(self, settings: EditorSettings):
        super().__init__()
        self.setWindowTitle("Page Crop")
        self.resize(1100, 900)
        self._settings = settings

        self._editor = CropEditorPanel(settings=settings)
        self._editor.crop_requested.connect(self._on_crop_requested)
        self.setCentralWidget(self._editor)

        file_menu = self.menuBar().addMenu("File")
        file_menu.addAction("Open PDF…").triggered.connect(self._open_pdf)
        file_menu.addAction("Close").triggered.connect(self._editor.close_document)
        file_menu.addSeparator()
        file_menu.addAction("Quit").triggered.connect(self.close)

        view_menu = self.menuBar().addMenu("View")
        self._hi_dpr_action = QAction("High-DPI Rendering", self, checkable=True)
        self._hi_dpr_action.setChecked(settings.hi_dpr)
        self._hi_dpr_action.toggled.connect(self._on_hi_dpr_toggled)
        view_menu.addAction(self._hi_dpr_action)
        self._debug_action = QAction("Debug Messages", self, checkable=True)
        self._debug_action.setChecked(settings.debug_mode)
        self._debug_action.toggled.connect(self._on_debug_toggled)
        view_menu.addAction(self._debug_action)

        self.statusBar().showMessage("Open a PDF to start selecting crop areas.")

    def _open_pdf(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF files (*.pdf)")
        if not path:
            return
        data_store.dbg(f"Loading PDF: {path}")
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as exc:
            QMessageBox.warning(self, "Open Error", f"Could not read file:\n{exc}")
            return
        if self._editor.open_document(data, os.path.basename(path)):
            self.setWindowTitle(f"Page Crop — {os.path.basename(path)}")
            self.statusBar().showMessage("Drag on the page to select the area to keep.")

    def _on_crop_requested(self, selections: Mapping[int, CropBox]):
        pages = ", ".join(str(i + 1) for i in selections)
        self.statusBar().showMessage(f"Crop areas ready for page(s) {pages}.")

    def _on_hi_dpr_toggled(self, enabled: bool):
        # Takes effect on the next page render
        self._settings.hi_dpr = enabled
        self._save_settings()

    def _on_debug_toggled(self, enabled: bool):
        self._settings.debug_mode = enabled
        data_store.set_debug(enabled)
        self._save_settings()

    def _save_settings(self):
        try:
            data_store.save_settings(self._settings)
        except OSError as exc:
            data_store.dbg(f"Could not save settings: {exc}")


def main():
    try:
        settings = data_store.load_settings()
    except (OSError, ValueError) as exc:
        print(f"Could not load settings, using defaults: {exc}", file=sys.stderr)
        settings = EditorSettings()
    data_store.set_debug(settings.debug_mode)
    app = QApplication(sys.argv)
    app.setApplicationName("Page Crop")
    window = MainWindow(settings)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
