"""
pdf_service.py — Headless-Browser PDF Conversion.

Prints an HTML document to PDF with Playwright's Chromium. One browser is
launched per call and closed before returning; there is no pooling, queue or
retry. The page is given the HTML directly (``set_content``), so relative
asset URLs are not resolved. Embed images as data URIs or absolute URLs.
"""

import logging
from typing import Any, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from practice_report.config import DEFAULTS

logger = logging.getLogger(__name__)


class PdfConversionError(RuntimeError):
    """The headless browser could not produce a PDF."""


def html_to_pdf(html: str, cfg: Optional[dict[str, Any]] = None) -> bytes:
    """Render ``html`` in headless Chromium and return the printed PDF.

    Args:
        html: Complete HTML document.
        cfg: Configuration dict; the ``pdf`` section controls paper format,
            load wait condition, timeout and browser launch arguments.

    Returns:
        Raw PDF bytes.

    Raises:
        PdfConversionError: If the browser fails to launch, load or print.
    """
    pdf_cfg = (cfg or DEFAULTS)["pdf"]
    logger.info("Converting HTML to PDF (%d chars, format=%s)", len(html), pdf_cfg["format"])

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True, args=list(pdf_cfg["launch_args"]))
            try:
                page = browser.new_page()
                page.set_content(
                    html,
                    wait_until=pdf_cfg["wait_until"],
                    timeout=pdf_cfg["timeout_ms"],
                )
                pdf_bytes = page.pdf(
                    format=pdf_cfg["format"],
                    print_background=pdf_cfg["print_background"],
                    prefer_css_page_size=pdf_cfg["prefer_css_page_size"],
                )
            finally:
                browser.close()
    except PlaywrightError as exc:
        logger.error("PDF conversion failed: %s", exc, exc_info=True)
        raise PdfConversionError(f"PDF generation failed: {exc}") from exc

    logger.info("PDF generated -- %d bytes", len(pdf_bytes))
    return pdf_bytes
