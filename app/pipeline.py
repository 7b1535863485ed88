"""Document processing pipeline.

One configurable path replaces the handler variants: the extraction engine
(Textract or local PDF text), the submission strategy (inline bytes or an
object-store reference) and the execution mode (one synchronous call or an
asynchronous job polled to completion) are all chosen by settings.
Collaborators are built once per process by :func:`build_pipeline` and
injected, so tests can swap any of them for stubs.
"""

import logging
import mimetypes
import posixpath
from typing import List, Optional, Union

from app.assembly import assemble, page_count
from app.aws_utils import TextractProvider, get_s3_client, get_textract_client, link_cell_text
from app.errors import TransformError
from app.intake import check_size, validate_document
from app.models import (
    Document,
    ExtractTextResponse,
    JobId,
    ResultPage,
    S3Location,
    UploadResponse,
)
from app.pdf_text import extract_pdf_pages
from app.polling import JobPoller, RetryPolicy
from app.settings import Settings
from app.storage import S3ObjectStore
from app.transform import PostProcessor, build_post_processor

logger = logging.getLogger("medical_report.pipeline")


class ReportPipeline:
    def __init__(
        self,
        settings: Settings,
        provider: TextractProvider,
        store: S3ObjectStore,
        post_processor: PostProcessor,
        retry_policy: RetryPolicy,
    ) -> None:
        self._settings = settings
        self._provider = provider
        self._store = store
        self._post_processor = post_processor
        self._retry_policy = retry_policy

    # ----------------------- SUBMISSION -----------------------

    def _stage(self, document: Document) -> S3Location:
        key = self._store.generate_key(document.filename)
        path = self._store.upload(key, document.content, document.content_type)
        return self._store.location(path)

    def submit(self, document: Document, stored_path: Optional[str] = None) -> JobId:
        """
        Start an analysis job for ``document``. The size ceiling is enforced
        before any network call. Textract jobs only read from S3, so a
        document that is not already stored is staged there first.
        """
        check_size(document, self._settings.max_upload_bytes)

        location = self._store.location(stored_path) if stored_path else self._stage(document)
        job_id = self._provider.start_job(location)
        logger.info("Submitted %s as job %s", document.describe(), job_id)
        return job_id

    # ----------------------- EXTRACTION -----------------------

    def _sync_source(self, document: Document, stored_path: Optional[str]) -> Union[Document, S3Location]:
        if self._settings.submission_strategy == "inline_bytes":
            return document
        if stored_path:
            return self._store.location(stored_path)
        return self._stage(document)

    def extract(self, document: Document, stored_path: Optional[str] = None) -> List[ResultPage]:
        if self._settings.extraction_engine == "local_pdf":
            return extract_pdf_pages(document, page_limit=self._settings.max_pdf_pages)

        if self._settings.execution_mode == "synchronous":
            check_size(document, self._settings.max_upload_bytes)
            return [self._provider.analyze_sync(self._sync_source(document, stored_path))]

        job_id = self.submit(document, stored_path)
        poller = JobPoller(self._provider, self._retry_policy)
        return link_cell_text(poller.poll(job_id))

    # ----------------------- POST-PROCESSING -----------------------

    def _post_process(self, text: str, target_language: str) -> str:
        try:
            return self._post_processor.transform(text, target_language)
        except TransformError:
            if self._settings.on_transform_error == "propagate":
                raise
            logger.warning("Returning untransformed text after %s post-processing failed", target_language)
            return text

    # ----------------------- ENTRY POINTS -----------------------

    def process(
        self,
        document: Document,
        target_language: Optional[str] = None,
        stored_path: Optional[str] = None,
    ) -> ExtractTextResponse:
        """Validate, extract, assemble and post-process one document."""

        target_language = target_language or self._settings.source_language
        validate_document(document, self._settings)
        logger.info("Processing %s into %s", document.describe(), target_language)

        pages = self.extract(document, stored_path)
        text = assemble(pages)
        logger.info("Assembled %s chars from %s result page(s)", len(text), len(pages))

        return ExtractTextResponse(
            extracted_text=self._post_process(text, target_language),
            page_count=page_count(pages),
        )

    def process_stored(self, file_id: str, target_language: Optional[str] = None) -> ExtractTextResponse:
        """Process a document previously saved with :meth:`store_document`."""

        content = self._store.download(file_id)
        filename = posixpath.basename(file_id)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        document = Document(content=content, filename=filename, content_type=content_type)
        return self.process(document, target_language, stored_path=file_id)

    def store_document(self, document: Document) -> UploadResponse:
        validate_document(document, self._settings)
        key = self._store.generate_key(document.filename)
        path = self._store.upload(key, document.content, document.content_type)
        return UploadResponse(
            file_id=path,
            filename=document.filename,
            content_type=document.content_type,
            size=document.size,
            url=self._store.get_public_url(path),
        )


def build_pipeline(settings: Settings) -> ReportPipeline:
    """Construct the process-wide pipeline and its AWS/OpenAI collaborators."""

    provider = TextractProvider(
        get_textract_client(settings.aws_region),
        features=settings.textract_features,
    )
    store = S3ObjectStore(
        get_s3_client(settings.aws_region),
        bucket=settings.s3_bucket,
        prefix=settings.s3_prefix,
        url_expiry_seconds=settings.public_url_expiry_seconds,
    )
    policy = RetryPolicy(
        max_attempts=settings.poll_max_attempts,
        interval_seconds=settings.poll_interval_seconds,
        jitter_seconds=settings.poll_jitter_seconds,
    )
    return ReportPipeline(
        settings=settings,
        provider=provider,
        store=store,
        post_processor=build_post_processor(settings),
        retry_policy=policy,
    )
