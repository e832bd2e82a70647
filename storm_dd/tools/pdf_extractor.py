from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO

from loguru import logger
from pypdf import PdfReader

from storm_dd.errors import ExtractionError

DEFAULT_MAX_PAGES = 15

Source = bytes | bytearray | str | Path | BinaryIO


def _open_reader(source: Source) -> PdfReader:
    if isinstance(source, (bytes, bytearray)):
        return PdfReader(io.BytesIO(bytes(source)))
    if isinstance(source, (str, Path)):
        return PdfReader(str(source))
    return PdfReader(source)


def extract_text(source: Source, *, max_pages: int = DEFAULT_MAX_PAGES) -> str:
    """Extract page-delimited plain text from the first `max_pages` pages of a PDF.

    Raises ExtractionError when the input is not a readable PDF, and also when
    it reads fine but yields no text at all (image-only scans).
    """
    try:
        reader = _open_reader(source)
        page_count = min(len(reader.pages), max(max_pages, 1))
        page_texts: list[str] = []
        for index in range(page_count):
            page_text = reader.pages[index].extract_text() or ""
            page_texts.append(" ".join(page_text.split()))
    except Exception as e:
        logger.error(f"PDF extraction failed: {e}")
        raise ExtractionError(f"PDF parsing failed: {e}") from e

    if not any(page_texts):
        raise ExtractionError(
            "PDF contains no extractable text",
            user_message="未能从 PDF 中提取到文字，可能是扫描件或图片版文档。",
        )
    full_text = "".join(
        f"--- Page {index} ---\n{text}\n\n" for index, text in enumerate(page_texts, 1)
    )
    logger.debug(f"Extracted {len(full_text)} chars from {page_count} page(s)")
    return full_text
