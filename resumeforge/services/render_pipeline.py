import asyncio
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterator

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from pydantic import ValidationError

from resumeforge.config import get_settings
from resumeforge.exceptions import NotFoundError, RenderError
from resumeforge.schemas.resume import ResumeContent
from resumeforge.services.artifacts import ArtifactStore
from resumeforge.services.pdf_converter import PDFConverter
from resumeforge.services.resume_store import clean_content

logger = logging.getLogger(__name__)

# Template directory
TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
TEMPLATE_NAME = "resume_template.html"

CHUNK_SIZE = 64 * 1024

_jinja_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

RenderEngine = Callable[[str], Awaitable[bytes]]


def render_markup(document: dict[str, Any]) -> str:
    """Render the resume template for a document. No I/O beyond the template load.

    Raises:
        RenderError: If the document does not fit the resume shape or the
            template fails.
    """
    try:
        resume = ResumeContent.model_validate(clean_content(document))
        template = _jinja_env.get_template(TEMPLATE_NAME)
        return template.render(resume=resume)
    except ValidationError as exc:
        raise RenderError(f"resume content is not renderable: {exc}") from exc
    except TemplateError as exc:
        raise RenderError(f"template failed: {exc}") from exc


class RenderPipeline:
    """Turns resume content into a PDF held for its requester.

    Flow:
    1. Validate content and render HTML from the template
    2. Convert HTML to PDF with the rendering engine, bounded by a timeout
    3. Store the PDF under a fresh handle owned by the requester
    """

    def __init__(
        self,
        artifacts: ArtifactStore,
        engine: RenderEngine = PDFConverter.html_to_pdf,
        timeout: float = 6.0,
    ):
        self.artifacts = artifacts
        self.engine = engine
        self.timeout = timeout

    async def render(self, document: dict[str, Any], owner: str) -> str:
        """Render ``document`` for ``owner`` and return the artifact handle.

        Raises:
            RenderError: On invalid content, engine failure or timeout.
        """
        logger.info("[Render %s] Rendering HTML template...", owner)
        html_content = render_markup(document)

        logger.info("[Render %s] Converting HTML to PDF...", owner)
        try:
            pdf_bytes = await asyncio.wait_for(
                self.engine(html_content), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            raise RenderError(
                f"rendering engine timed out after {self.timeout}s", timed_out=True
            ) from exc
        except Exception as exc:
            raise RenderError(f"rendering engine failed: {exc}") from exc

        artifact = self.artifacts.put(owner, pdf_bytes)
        logger.info(
            "[Render %s] Artifact %s ready (%d bytes)",
            owner,
            artifact.handle,
            len(pdf_bytes),
        )
        return artifact.handle

    def fetch(self, handle: str, owner: str) -> Iterator[bytes]:
        """Stream a rendered artifact back to the user who rendered it.

        Raises:
            NotFoundError: If the handle is unknown, expired or not ``owner``'s.
        """
        artifact = self.artifacts.get(handle, owner)
        if artifact is None:
            raise NotFoundError(f"artifact {handle} not found")
        return _chunks(artifact.content)


def _chunks(content: bytes) -> Iterator[bytes]:
    for start in range(0, len(content), CHUNK_SIZE):
        yield content[start:start + CHUNK_SIZE]


@lru_cache
def get_render_pipeline() -> RenderPipeline:
    settings = get_settings()
    artifacts = ArtifactStore(
        ttl_seconds=settings.artifact_ttl_seconds,
        max_per_owner=settings.artifact_max_per_owner,
    )
    return RenderPipeline(artifacts, timeout=settings.render_timeout_seconds)
