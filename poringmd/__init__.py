"""Poring markdown notes: dialect preprocessor, preview renderer and page guides."""

from .dialect import PreprocessResult, preprocess, preprocess_document
from .pagination import PageGeometry, PageGuide, PageSpec, PaginationGuideEngine, compute_page_guides
from .renderer import PoringRenderer
from .sync import ClickToSourceResolver, PreviewNode

__all__ = [
    "ClickToSourceResolver",
    "PageGeometry",
    "PageGuide",
    "PageSpec",
    "PaginationGuideEngine",
    "PoringRenderer",
    "PreprocessResult",
    "PreviewNode",
    "compute_page_guides",
    "preprocess",
    "preprocess_document",
]
