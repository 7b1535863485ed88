"""Local PDF text extraction for reports that carry embedded text.

Each PDF page becomes one :class:`ResultPage` of LINE blocks, so the same
assembly step handles local and Textract results.
"""

import logging
import warnings
from io import BytesIO
from typing import List, Optional

from PyPDF2 import PdfReader
from PyPDF2.errors import PyPdfError

from app.errors import ProviderError, ValidationError
from app.models import Block, BlockType, Document, ResultPage

# Silence the noisy PyPDF2 cmap warnings
warnings.filterwarnings("ignore", category=UserWarning, module="PyPDF2._cmap")

logger = logging.getLogger("medical_report.pdf")


def extract_pdf_pages(document: Document, *, page_limit: Optional[int] = None) -> List[ResultPage]:
    """
    Read embedded text page by page. Image-only pages come back as pages
    with no blocks rather than being dropped, so page numbering survives.

    The `page_limit` allows us to cap work for very large files (useful for
    serverless environments where execution time is limited).
    """
    if not document.is_pdf:
        raise ValidationError(
            "Local extraction only supports PDF files",
            {"contentType": document.content_type},
        )

    try:
        reader = PdfReader(BytesIO(document.content))
        page_objects = list(reader.pages)
    except (PyPdfError, ValueError) as exc:
        logger.error("Could not parse %s: %s", document.describe(), exc)
        raise ProviderError("Could not read PDF", {"service": "pdf", "reason": str(exc)}) from exc

    pages: List[ResultPage] = []
    for idx, page in enumerate(page_objects):
        if page_limit is not None and idx >= page_limit:
            logger.info("Stopped at page limit %s for %s", page_limit, document.filename)
            break
        try:
            text = page.extract_text() or ""
        except (PyPdfError, ValueError, KeyError) as exc:
            logger.warning("Failed to extract text from page %s of %s: %s", idx, document.filename, exc)
            text = ""
        blocks = [Block(kind=BlockType.LINE, text=line.strip()) for line in text.splitlines() if line.strip()]
        pages.append(ResultPage(blocks=blocks))

    logger.info("Extracted %s page(s) locally from %s", len(pages), document.describe())
    return pages
