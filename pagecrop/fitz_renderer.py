"""PyMuPDF (fitz) implementation of the page renderer interfaces."""
import fitz  # pymupdf
from PySide6.QtGui import QImage

from pagecrop import data_store
from pagecrop.errors import DocumentOpenError, RenderError


class FitzPage:
    def __init__(self, page: "fitz.Page", page_num: int):
        self._page = page
        self.page_num = page_num
        # page.rect is rotation-aware, so this is the width as displayed
        self.intrinsic_width: float = page.rect.width

    def paint(self, scale: float) -> QImage:
        data_store.dbg(f"Rasterising page {self.page_num} at scale {scale:.3f} "
                       f"(page size: {self._page.rect.width:.0f}×"
                       f"{self._page.rect.height:.0f} pt)")
        try:
            pix = self._page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        except Exception as exc:
            raise RenderError(self.page_num, f"Cannot render page {self.page_num}: {exc}") from exc
        img = QImage(pix.samples, pix.width, pix.height,
                     pix.stride, QImage.Format.Format_RGB888)
        # convertToFormat makes a deep copy, detaching from pix.samples
        return img.convertToFormat(QImage.Format.Format_RGB32)


class FitzDocument:
    def __init__(self, doc: "fitz.Document"):
        self._doc = doc
        self.page_count: int = doc.page_count

    def get_page(self, page_num: int) -> FitzPage:
        if not 1 <= page_num <= self.page_count:
            raise RenderError(page_num, f"Page {page_num} out of range (1–{self.page_count})")
        try:
            page = self._doc[page_num - 1]
        except Exception as exc:
            raise RenderError(page_num, f"Cannot load page {page_num}: {exc}") from exc
        return FitzPage(page, page_num)

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None


class FitzPageRenderer:
    """Opens PDF bytes with PyMuPDF."""

    def open_document(self, data: bytes) -> FitzDocument:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            data_store.dbg(f"Failed to open PDF ({len(data)} bytes): {exc}")
            raise DocumentOpenError(f"Cannot open this PDF: {exc}") from exc
        if doc.page_count == 0:
            doc.close()
            raise DocumentOpenError("PDF has no pages")
        data_store.dbg(f"PDF opened ({doc.page_count} page(s))")
        return FitzDocument(doc)
