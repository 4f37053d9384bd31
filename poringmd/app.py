"""PySide6 editor window: source buffer on the left, paginated preview on the right."""

from __future__ import annotations

import json
import sys
from dataclasses import replace
from pathlib import Path

from PySide6.QtCore import (
    QBuffer,
    QEasingCurve,
    QIODevice,
    QMarginsF,
    QObject,
    QPropertyAnimation,
    QRunnable,
    Qt,
    QThreadPool,
    QTimer,
    QUrl,
    Signal,
)
from PySide6.QtGui import (
    QAction,
    QDesktopServices,
    QFont,
    QImage,
    QPageLayout,
    QPageSize,
    QPixmap,
    QTextCursor,
    QTextDocument,
)
from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMenu,
    QMessageBox,
    QPushButton,
    QSplitter,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from .bridge import PreviewLayoutBridge, click_from_payload, parse_bridge_message
from .config import PoringConfig, default_image_dir
from .covers import apply_cover_page, available_cover_templates
from .images import DirectoryImageStore, image_markdown
from .pagination import PageGuide, PaginationGuideEngine
from .pdf import PRINT_MARGIN_MM, PRINT_PAGE_SIZE, stamp_pdf_page_numbers
from .renderer import PoringRenderer
from .sync import ClickToSourceResolver

RENDER_DEBOUNCE_MS = 250
SCROLL_ANIMATION_MS = 260
EDITOR_FONT_FAMILY = "JetBrains Mono"
EDITOR_FONT_POINT_SIZE = 11
MEASURE_MARKER = "|"
IMAGE_FILE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"}


def _utf16_offset(text: str, offset: int) -> int:
    """Qt text positions count UTF-16 units; Python counts code points."""
    return len(text[:offset].encode("utf-16-le")) // 2


def _image_to_png_bytes(image: QImage) -> bytes:
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    return bytes(buffer.data())


class PoringTextEdit(QTextEdit):
    """Plain-text editor that hands pasted or dropped images to the window."""

    image_pasted = Signal(object)

    def canInsertFromMimeData(self, source) -> bool:  # noqa: N802
        return source.hasImage() or bool(self._local_image_paths(source)) or super().canInsertFromMimeData(source)

    def insertFromMimeData(self, source) -> None:  # noqa: N802
        if source.hasImage():
            data = source.imageData()
            image = data.toImage() if isinstance(data, QPixmap) else QImage(data)
            if not image.isNull():
                self.image_pasted.emit(_image_to_png_bytes(image))
                return
        paths = self._local_image_paths(source)
        if paths:
            for path in paths:
                try:
                    self.image_pasted.emit(path.read_bytes())
                except OSError as exc:
                    print(f"poringmd: could not read pasted image {path}: {exc}", file=sys.stderr)
            return
        super().insertFromMimeData(source)

    @staticmethod
    def _local_image_paths(source) -> list[Path]:
        if not source.hasUrls():
            return []
        paths = [Path(url.toLocalFile()) for url in source.urls() if url.isLocalFile()]
        return [path for path in paths if path.suffix.lower() in IMAGE_FILE_SUFFIXES]


class EditorTextBuffer:
    """`TextBuffer` over the source `QTextEdit`."""

    def __init__(self, editor: QTextEdit):
        self.editor = editor
        self._scroll_animation: QPropertyAnimation | None = None

    def text(self) -> str:
        return self.editor.toPlainText()

    def set_selection(self, start: int, end: int) -> None:
        text = self.text()
        cursor = self.editor.textCursor()
        cursor.setPosition(_utf16_offset(text, start))
        cursor.setPosition(_utf16_offset(text, end), QTextCursor.MoveMode.KeepAnchor)
        self.editor.setTextCursor(cursor)

    def focus(self) -> None:
        self.editor.setFocus(Qt.FocusReason.OtherFocusReason)

    def viewport_height(self) -> float:
        return float(self.editor.viewport().height())

    def scroll_to(self, top: float, smooth: bool = True) -> None:
        bar = self.editor.verticalScrollBar()
        target = int(min(max(top, bar.minimum()), bar.maximum()))
        if self._scroll_animation is not None:
            self._scroll_animation.stop()
        if not smooth:
            bar.setValue(target)
            return
        animation = QPropertyAnimation(bar, b"value", self.editor)
        animation.setDuration(SCROLL_ANIMATION_MS)
        animation.setStartValue(bar.value())
        animation.setEndValue(target)
        animation.setEasingCurve(QEasingCurve.Type.OutCubic)
        self._scroll_animation = animation
        animation.start()


class DocumentMeasureClone:
    """Off-screen `QTextDocument` laid out exactly like the editor's document."""

    def __init__(self, editor: QTextEdit):
        source = editor.document()
        self._document = QTextDocument()
        self._document.setDefaultFont(source.defaultFont())
        self._document.setDefaultTextOption(source.defaultTextOption())
        self._document.setDocumentMargin(source.documentMargin())
        self._document.setTextWidth(editor.viewport().width())

    def set_text(self, text: str) -> None:
        self._document.setPlainText(text + MEASURE_MARKER)

    def marker_top(self) -> float:
        # Touching size() forces a full layout pass before reading geometry.
        self._document.size()
        block = self._document.lastBlock()
        block_top = self._document.documentLayout().blockBoundingRect(block).top()
        layout = block.layout()
        if layout is None or layout.lineCount() == 0:
            return block_top
        return block_top + layout.lineAt(layout.lineCount() - 1).y()

    def discard(self) -> None:
        self._document.clear()
        self._document.deleteLater()


class DocumentTextMetrics:
    def create_clone(self, buffer: EditorTextBuffer) -> DocumentMeasureClone:
        return DocumentMeasureClone(buffer.editor)


class _ExternalLinkPage(QWebEnginePage):
    """Throwaway page for `target=_blank` links; hands the URL to the desktop."""

    def acceptNavigationRequest(self, url, _nav_type, _is_main_frame) -> bool:  # noqa: N802
        QDesktopServices.openUrl(url)
        self.deleteLater()
        return False


class PreviewPage(QWebEnginePage):
    bridge_message = Signal(object)

    def javaScriptConsoleMessage(self, level, message, line_number, source_id) -> None:  # noqa: N802
        payload = parse_bridge_message(message)
        if payload is None:
            super().javaScriptConsoleMessage(level, message, line_number, source_id)
            return
        self.bridge_message.emit(payload)

    def acceptNavigationRequest(self, url, nav_type, is_main_frame) -> bool:  # noqa: N802
        if nav_type == QWebEnginePage.NavigationType.NavigationTypeLinkClicked and url.scheme() in {
            "http",
            "https",
            "mailto",
        }:
            QDesktopServices.openUrl(url)
            return False
        return super().acceptNavigationRequest(url, nav_type, is_main_frame)

    def createWindow(self, _window_type) -> QWebEnginePage:  # noqa: N802
        return _ExternalLinkPage(self)


class PreviewRenderWorkerSignals(QObject):
    """Signals emitted by background preview rendering workers."""

    finished = Signal(int, str, str)


class PreviewRenderWorker(QRunnable):
    """Run the dialect pass and markdown render off the UI thread."""

    def __init__(self, request_id: int, source: str, title: str, config: PoringConfig):
        super().__init__()
        self.request_id = request_id
        self.source = source
        self.title = title
        self.config = config
        self.signals = PreviewRenderWorkerSignals()

    def run(self) -> None:
        try:
            # A fresh renderer per job keeps markdown-it state thread-local.
            renderer = PoringRenderer(self.config)
            html_doc = renderer.render_document(self.source, self.title)
            self.signals.finished.emit(self.request_id, html_doc, "")
        except Exception as exc:
            self.signals.finished.emit(self.request_id, "", str(exc))


class PdfExportWorkerSignals(QObject):
    """Signals emitted by background PDF export workers."""

    finished = Signal(str, str)


class PdfExportWorker(QRunnable):
    """Apply footer page numbers and write exported PDF in background."""

    def __init__(self, output_path: Path, pdf_bytes: bytes):
        super().__init__()
        self.output_path = output_path
        self.pdf_bytes = pdf_bytes
        self.signals = PdfExportWorkerSignals()

    def run(self) -> None:
        try:
            stamped_pdf = stamp_pdf_page_numbers(self.pdf_bytes)
            self.output_path.write_bytes(stamped_pdf)
            self.signals.finished.emit(str(self.output_path), "")
        except Exception as exc:
            self.signals.finished.emit(str(self.output_path), str(exc))


class PoringEditorWindow(QMainWindow):
    def __init__(self, path: Path | None, config: PoringConfig):
        super().__init__()
        if config.image_dir is None:
            config = replace(config, image_dir=default_image_dir())
        self.config = config
        self.image_store = DirectoryImageStore(config.image_dir)
        self.current_file: Path | None = None
        self._dirty = False
        self._render_pool = QThreadPool(self)
        self._render_pool.setMaxThreadCount(1)
        self._render_request_id = 0
        self._active_render_workers: set[PreviewRenderWorker] = set()
        self._pdf_pool = QThreadPool(self)
        self._pdf_pool.setMaxThreadCount(1)
        self._active_pdf_workers: set[PdfExportWorker] = set()
        self._pdf_export_in_progress = False
        self._preview_scroll_y = 0.0

        self.render_timer = QTimer(self)
        self.render_timer.setSingleShot(True)
        self.render_timer.setInterval(RENDER_DEBOUNCE_MS)
        self.render_timer.timeout.connect(self._render_preview)

        self.resize(1540, 980)

        self.editor = PoringTextEdit()
        self.editor.setAcceptRichText(False)
        self.editor.image_pasted.connect(self._store_and_insert_image)
        self.editor.setLineWrapMode(QTextEdit.LineWrapMode.WidgetWidth)
        editor_font = QFont(EDITOR_FONT_FAMILY, EDITOR_FONT_POINT_SIZE)
        editor_font.setStyleHint(QFont.StyleHint.Monospace)
        self.editor.setFont(editor_font)
        self.editor.textChanged.connect(self._on_editor_text_changed)

        self.preview = QWebEngineView()
        self.preview_page = PreviewPage(self.preview)
        self.preview.setPage(self.preview_page)
        preview_settings = self.preview.settings()
        # Preview pages are loaded as local HTML. Allow the MathJax CDN fallback.
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, True)
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)
        if hasattr(QWebEngineSettings.WebAttribute, "PrintElementBackgrounds"):
            preview_settings.setAttribute(QWebEngineSettings.WebAttribute.PrintElementBackgrounds, True)
        self.preview_page.bridge_message.connect(self._on_bridge_message)
        self.preview.loadFinished.connect(self._on_preview_load_finished)

        self.text_buffer = EditorTextBuffer(self.editor)
        self.click_resolver = ClickToSourceResolver(self.text_buffer, DocumentTextMetrics())
        self.layout_bridge = PreviewLayoutBridge()
        self.pagination = PaginationGuideEngine(self.layout_bridge, self.layout_bridge, self._apply_page_guides)
        self.pagination.mount()

        open_btn = QPushButton("Open")
        open_btn.clicked.connect(self._open_file_dialog)
        save_btn = QPushButton("Save")
        save_btn.clicked.connect(self._save_current_file)
        self.pdf_btn = QPushButton("PDF")
        self.pdf_btn.clicked.connect(self._export_pdf)
        image_btn = QPushButton("Image")
        image_btn.clicked.connect(self._insert_image_dialog)
        cover_btn = QPushButton("Cover")
        cover_menu = QMenu(cover_btn)
        for name, template in available_cover_templates(self.config.cover_templates).items():
            cover_action = cover_menu.addAction(name)
            cover_action.triggered.connect(lambda _checked=False, text=template: self._insert_cover_page(text))
        cover_btn.setMenu(cover_menu)
        self.path_label = QLabel("")

        top_bar = QHBoxLayout()
        top_bar.setContentsMargins(0, 0, 0, 0)
        top_bar.addWidget(open_btn)
        top_bar.addWidget(save_btn)
        top_bar.addWidget(self.pdf_btn)
        top_bar.addWidget(image_btn)
        top_bar.addWidget(cover_btn)
        top_bar.addWidget(self.path_label, 1)
        top_bar_widget = QWidget()
        top_bar_widget.setLayout(top_bar)

        self.splitter = QSplitter(Qt.Horizontal)
        self.splitter.addWidget(self.editor)
        self.splitter.addWidget(self.preview)
        self.splitter.setChildrenCollapsible(False)
        self.splitter.setStretchFactor(0, 1)
        self.splitter.setStretchFactor(1, 1)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(top_bar_widget)
        layout.addWidget(self.splitter, 1)
        self.setCentralWidget(central)
        self._add_shortcuts()

        if path is not None:
            self._load_file(path)
        else:
            self._update_window_title()
            self._render_preview()
        self.statusBar().showMessage("Ready", 3000)

    def _add_shortcuts(self) -> None:
        """Register window-level keyboard shortcuts."""
        for label, shortcut, handler in (
            ("Open", "Ctrl+O", self._open_file_dialog),
            ("Save", "Ctrl+S", self._save_current_file),
            ("Export PDF", "Ctrl+P", self._export_pdf),
            ("Insert Image", "Ctrl+Shift+I", self._insert_image_dialog),
        ):
            action = QAction(label, self)
            action.setShortcut(shortcut)
            action.triggered.connect(handler)
            self.addAction(action)

    def _update_window_title(self) -> None:
        name = self.current_file.name if self.current_file is not None else "Untitled"
        self.setWindowTitle(f"{'*' if self._dirty else ''}{name} - poringmd")
        self.path_label.setText(str(self.current_file) if self.current_file is not None else "")

    def _load_file(self, path: Path) -> None:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            QMessageBox.critical(self, "Open failed", f"Could not read {path}:\n{exc}")
            return
        self.current_file = path.resolve()
        self._preview_scroll_y = 0.0
        self.editor.blockSignals(True)
        self.editor.setPlainText(text)
        self.editor.blockSignals(False)
        self._dirty = False
        self._update_window_title()
        self._render_preview()

    def _open_file_dialog(self, _checked: bool = False) -> None:
        if not self._confirm_discard_changes():
            return
        start_dir = str(self.current_file.parent) if self.current_file is not None else str(Path.home())
        selected, _filter = QFileDialog.getOpenFileName(self, "Open note", start_dir, "Notes (*.md *.txt);;All files (*)")
        if selected:
            self._load_file(Path(selected))

    def _save_current_file(self, _checked: bool = False) -> bool:
        if self.current_file is None:
            selected, _filter = QFileDialog.getSaveFileName(self, "Save note", str(Path.home()), "Notes (*.md)")
            if not selected:
                return False
            self.current_file = Path(selected).resolve()
        try:
            self.current_file.write_text(self.editor.toPlainText(), encoding="utf-8")
        except OSError as exc:
            QMessageBox.critical(self, "Save failed", f"Could not write {self.current_file}:\n{exc}")
            return False
        self._dirty = False
        self._update_window_title()
        self.statusBar().showMessage(f"Saved {self.current_file.name}", 3000)
        return True

    def _insert_image_dialog(self, _checked: bool = False) -> None:
        start_dir = str(self.current_file.parent) if self.current_file is not None else str(Path.home())
        selected, _filter = QFileDialog.getOpenFileName(
            self, "Insert image", start_dir, "Images (*.png *.jpg *.jpeg *.gif *.webp *.svg)"
        )
        if not selected:
            return
        try:
            blob = Path(selected).read_bytes()
        except OSError as exc:
            QMessageBox.critical(self, "Insert image failed", f"Could not read {selected}:\n{exc}")
            return
        self._store_and_insert_image(blob)

    def _store_and_insert_image(self, blob: bytes) -> None:
        """Save image bytes to the image directory and reference them at the cursor."""
        try:
            key = self.image_store.save(blob)
        except (OSError, ValueError) as exc:
            QMessageBox.critical(self, "Insert image failed", f"Could not store image:\n{exc}")
            return
        self.editor.textCursor().insertText(image_markdown(key))
        self.statusBar().showMessage(f"Stored image {key}", 3000)

    def _insert_cover_page(self, template: str) -> None:
        cursor = QTextCursor(self.editor.document())
        cursor.beginEditBlock()
        cursor.select(QTextCursor.SelectionType.Document)
        cursor.insertText(apply_cover_page(self.editor.toPlainText(), template))
        cursor.endEditBlock()

    def _confirm_discard_changes(self) -> bool:
        if not self._dirty:
            return True
        answer = QMessageBox.question(
            self,
            "Unsaved changes",
            "Save changes before continuing?",
            QMessageBox.StandardButton.Save | QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
        )
        if answer == QMessageBox.StandardButton.Save:
            return self._save_current_file()
        return answer == QMessageBox.StandardButton.Discard

    def closeEvent(self, event) -> None:  # noqa: N802
        if not self._confirm_discard_changes():
            event.ignore()
            return
        self.pagination.unmount()
        super().closeEvent(event)

    def _on_editor_text_changed(self) -> None:
        if not self._dirty:
            self._dirty = True
            self._update_window_title()
        self.render_timer.start()

    def _base_url(self) -> QUrl:
        directory = self.current_file.parent if self.current_file is not None else Path.cwd()
        return QUrl.fromLocalFile(f"{directory}/")

    def _render_preview(self) -> None:
        """Render the current buffer snapshot; older pending results lose."""
        self._render_request_id += 1
        title = self.current_file.name if self.current_file is not None else "Untitled"
        worker = PreviewRenderWorker(self._render_request_id, self.editor.toPlainText(), title, self.config)
        self._active_render_workers.add(worker)
        worker.signals.finished.connect(
            lambda request_id, html_doc, error_text, current_worker=worker: self._on_preview_render_finished(
                current_worker,
                request_id,
                html_doc,
                error_text,
            )
        )
        self._render_pool.start(worker)

    def _on_preview_render_finished(
        self, worker: PreviewRenderWorker, request_id: int, html_doc: str, error_text: str
    ) -> None:
        self._active_render_workers.discard(worker)
        if request_id != self._render_request_id:
            return
        if error_text:
            print(f"poringmd: preview render failed: {error_text}", file=sys.stderr)
            self.statusBar().showMessage(f"Preview render failed: {error_text}", 5000)
            self.preview.setHtml(PoringRenderer.placeholder_html(f"Could not render preview: {error_text}"))
            return
        self.layout_bridge.reset()
        self.preview.setHtml(html_doc, self._base_url())

    def _on_preview_load_finished(self, ok: bool) -> None:
        if not ok:
            self.statusBar().showMessage("Preview load failed", 5000)
            return
        if self._preview_scroll_y > 0:
            self.preview.page().runJavaScript(f"window.scrollTo(0, {float(self._preview_scroll_y)});")

    def _on_bridge_message(self, payload: dict) -> None:
        kind = payload.get("type")
        if kind == "click":
            node, selection = click_from_payload(payload)
            self.click_resolver.handle_click(node, selection)
        elif kind == "layout":
            self.layout_bridge.update(payload)
        elif kind == "scroll":
            try:
                self._preview_scroll_y = max(0.0, float(payload.get("y", 0.0)))
            except (TypeError, ValueError):
                pass

    def _apply_page_guides(self, guides: list[PageGuide]) -> None:
        guides_json = json.dumps([{"position": guide.position, "page_number": guide.page_number} for guide in guides])
        self.preview.page().runJavaScript(
            f"window.__poringmdSetGuides && window.__poringmdSetGuides({guides_json});"
        )

    def _set_pdf_export_busy(self, busy: bool) -> None:
        self._pdf_export_in_progress = busy
        self.pdf_btn.setEnabled(not busy)

    def _export_pdf(self, _checked: bool = False) -> None:
        """Print the preview at the export page size with the same margins the guides assume."""
        if self._pdf_export_in_progress:
            self.statusBar().showMessage("PDF export already in progress", 3000)
            return
        default_path = self.current_file.with_suffix(".pdf") if self.current_file is not None else Path.home() / "note.pdf"
        selected, _filter = QFileDialog.getSaveFileName(self, "Export PDF", str(default_path), "PDF (*.pdf)")
        if not selected:
            return
        output_path = Path(selected)
        layout = QPageLayout(
            QPageSize(getattr(QPageSize.PageSizeId, PRINT_PAGE_SIZE)),
            QPageLayout.Orientation.Portrait,
            QMarginsF(PRINT_MARGIN_MM, PRINT_MARGIN_MM, PRINT_MARGIN_MM, PRINT_MARGIN_MM),
            QPageLayout.Unit.Millimeter,
        )
        self._set_pdf_export_busy(True)
        self.statusBar().showMessage(f"Rendering PDF snapshot: {output_path.name}...")
        try:
            self.preview.page().printToPdf(
                lambda pdf_data, target=output_path: self._on_pdf_render_ready(target, pdf_data),
                layout,
            )
        except Exception as exc:
            self._set_pdf_export_busy(False)
            QMessageBox.critical(self, "PDF export failed", f"Could not start PDF rendering:\n{exc}")

    def _on_pdf_render_ready(self, output_path: Path, pdf_data) -> None:
        """Receive raw PDF bytes from WebEngine and start footer stamping."""
        try:
            raw_pdf = bytes(pdf_data)
        except Exception:
            raw_pdf = b""
        if not raw_pdf:
            self._set_pdf_export_busy(False)
            message = "Qt WebEngine returned an empty PDF payload"
            QMessageBox.critical(self, "PDF export failed", message)
            self.statusBar().showMessage(f"PDF export failed: {message}", 5000)
            return

        worker = PdfExportWorker(output_path, raw_pdf)
        self._active_pdf_workers.add(worker)
        worker.signals.finished.connect(
            lambda path_text, error_text, current_worker=worker: self._on_pdf_export_finished(
                current_worker,
                path_text,
                error_text,
            )
        )
        self._pdf_pool.start(worker)
        self.statusBar().showMessage(f"Writing numbered PDF: {output_path.name}...")

    def _on_pdf_export_finished(self, worker: PdfExportWorker, output_path_text: str, error_text: str) -> None:
        self._active_pdf_workers.discard(worker)
        self._set_pdf_export_busy(False)
        if error_text:
            QMessageBox.critical(self, "PDF export failed", f"Could not create PDF:\n{output_path_text}\n\n{error_text}")
            self.statusBar().showMessage(f"PDF export failed: {error_text}", 5000)
            return
        self.statusBar().showMessage(f"Exported PDF: {output_path_text}", 5000)


def run_editor(path: Path | None, config: PoringConfig) -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("poringmd")
    window = PoringEditorWindow(path, config)
    window.show()
    return app.exec()
