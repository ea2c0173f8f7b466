import logging
import tempfile
import os

from playwright.async_api import async_playwright

logger = logging.getLogger(__name__)

# Fixed page size of the resume layout
PAGE_WIDTH = "35.7cm"
PAGE_HEIGHT = "42cm"


class PDFConverter:
    """Converts HTML resume to PDF using Playwright (headless Chromium)."""

    @staticmethod
    async def html_to_pdf(html_content: str) -> bytes:
        """Render HTML string to a PDF byte buffer.

        Every call writes to its own temporary file, so concurrent renders
        never share an input or output path.

        Args:
            html_content: Complete HTML document string.

        Returns:
            PDF file as bytes.
        """
        # Write HTML to a temp file so Playwright can load it
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".html", delete=False, encoding="utf-8"
        ) as f:
            f.write(html_content)
            temp_path = f.name

        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=True)
                try:
                    page = await browser.new_page()

                    # Load the HTML file
                    await page.goto(f"file://{temp_path}", wait_until="networkidle")

                    pdf_bytes = await page.pdf(
                        width=PAGE_WIDTH,
                        height=PAGE_HEIGHT,
                        print_background=True,
                        margin={
                            "top": "0mm",
                            "right": "0mm",
                            "bottom": "0mm",
                            "left": "0mm",
                        },
                    )
                finally:
                    await browser.close()

                logger.info("PDF generated successfully (%d bytes)", len(pdf_bytes))
                return pdf_bytes

        finally:
            # Clean up temp file
            os.unlink(temp_path)
