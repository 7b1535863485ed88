"""AWS clients and the Textract analysis provider.

Clients are cached per region so a warm Lambda container reuses its
connections. The provider translates between Textract's response dicts and
our :class:`~app.models.Block` model and converts botocore failures into
:class:`~app.errors.ProviderError`.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.errors import ProviderError
from app.models import (
    Block,
    BlockType,
    Document,
    JobId,
    JobStatus,
    JobStatusResponse,
    ResultPage,
    S3Location,
)

logger = logging.getLogger("medical_report.aws")

_KNOWN_BLOCK_TYPES = {member.value for member in BlockType}


@lru_cache(maxsize=None)
def get_textract_client(region: str):
    """Return a cached Textract client for the given region."""
    return boto3.client("textract", region_name=region)


@lru_cache(maxsize=None)
def get_s3_client(region: str):
    return boto3.client("s3", region_name=region)


@lru_cache(maxsize=None)
def get_translate_client(region: str):
    return boto3.client("translate", region_name=region)


def provider_error(service: str, exc: Exception, **context: Any) -> ProviderError:
    """Wrap a botocore failure, keeping the AWS error code when there is one."""

    details: Dict[str, Any] = {"service": service, **context}
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        details["code"] = error.get("Code")
        message = error.get("Message") or str(exc)
    else:
        message = str(exc)
    return ProviderError(f"{service} request failed: {message}", details)


def _child_ids(raw: Dict[str, Any]) -> Iterable[str]:
    for relationship in raw.get("Relationships") or []:
        if relationship.get("Type") == "CHILD":
            yield from relationship.get("Ids", [])


def parse_blocks(raw_blocks: Sequence[Dict[str, Any]]) -> List[Block]:
    """
    Convert Textract block dicts into :class:`Block` instances, preserving
    delivery order. Block types we do not assemble (PAGE, KEY_VALUE_SET, ...)
    are dropped. CELL blocks keep their child WORD ids; their text is filled
    in by :func:`link_cell_text` once every page of the job is available.
    """
    blocks: List[Block] = []
    for raw in raw_blocks:
        block_type = raw.get("BlockType")
        if block_type not in _KNOWN_BLOCK_TYPES:
            continue

        blocks.append(
            Block(
                kind=BlockType(block_type),
                text=raw.get("Text"),
                id=raw.get("Id"),
                child_ids=list(_child_ids(raw)) if block_type == BlockType.CELL.value else [],
                row_index=raw.get("RowIndex"),
                column_index=raw.get("ColumnIndex"),
                column_span=raw.get("ColumnSpan"),
            )
        )
    return blocks


def link_cell_text(pages: Sequence[ResultPage]) -> List[ResultPage]:
    """
    Fill in CELL text from WORD blocks across all pages of one job. Textract
    paginates at 1000 blocks, so a cell's words may arrive on an earlier page.
    """
    words = {
        block.id: block.text or ""
        for page in pages
        for block in page.blocks
        if block.kind == BlockType.WORD and block.id
    }

    linked: List[ResultPage] = []
    for page in pages:
        blocks = [
            block.model_copy(
                update={"text": " ".join(words[child] for child in block.child_ids if child in words)}
            )
            if block.kind == BlockType.CELL and block.text is None
            else block
            for block in page.blocks
        ]
        linked.append(page.model_copy(update={"blocks": blocks}))
    return linked


def _document_pages(response: Dict[str, Any]) -> Optional[int]:
    return (response.get("DocumentMetadata") or {}).get("Pages")


class TextractProvider:
    """Synchronous and job-based document analysis through Amazon Textract."""

    def __init__(self, client, features: Optional[Sequence[str]] = None) -> None:
        self._client = client
        self._features = list(features or [])

    @property
    def uses_analysis(self) -> bool:
        return bool(self._features)

    @staticmethod
    def _document_param(source: Union[Document, S3Location]) -> Dict[str, Any]:
        if isinstance(source, S3Location):
            return {"S3Object": {"Bucket": source.bucket, "Name": source.key}}
        return {"Bytes": source.content}

    def analyze_sync(self, source: Union[Document, S3Location]) -> ResultPage:
        """Run a single blocking Textract call and return its blocks as one page."""

        try:
            if self.uses_analysis:
                response = self._client.analyze_document(
                    Document=self._document_param(source), FeatureTypes=self._features
                )
            else:
                response = self._client.detect_document_text(
                    Document=self._document_param(source)
                )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Textract synchronous request failed: %s", exc)
            raise provider_error("textract", exc) from exc

        page = ResultPage(
            blocks=parse_blocks(response.get("Blocks", [])),
            document_pages=_document_pages(response),
        )
        return link_cell_text([page])[0]

    def start_job(self, location: S3Location) -> JobId:
        """Start an asynchronous job. Textract only accepts S3 objects for jobs."""

        document_location = {"S3Object": {"Bucket": location.bucket, "Name": location.key}}
        try:
            if self.uses_analysis:
                response = self._client.start_document_analysis(
                    DocumentLocation=document_location, FeatureTypes=self._features
                )
            else:
                response = self._client.start_document_text_detection(
                    DocumentLocation=document_location
                )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to start Textract job for %s: %s", location.path, exc)
            raise provider_error("textract", exc, location=location.path) from exc

        job_id = response.get("JobId")
        if not job_id:
            raise ProviderError("textract returned no JobId", {"service": "textract"})
        logger.info("Started Textract job %s for %s", job_id, location.path)
        return job_id

    def get_job_status(self, job_id: JobId, next_token: Optional[str] = None) -> JobStatusResponse:
        kwargs: Dict[str, Any] = {"JobId": job_id}
        if next_token:
            kwargs["NextToken"] = next_token

        try:
            if self.uses_analysis:
                response = self._client.get_document_analysis(**kwargs)
            else:
                response = self._client.get_document_text_detection(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Textract status request failed for job %s: %s", job_id, exc)
            raise provider_error("textract", exc, jobId=job_id) from exc

        try:
            status = JobStatus(response.get("JobStatus"))
        except ValueError as exc:
            raise ProviderError(
                f"Unexpected Textract job status: {response.get('JobStatus')}",
                {"service": "textract", "jobId": job_id},
            ) from exc

        return JobStatusResponse(
            status=status,
            blocks=parse_blocks(response.get("Blocks", [])),
            next_token=response.get("NextToken"),
            status_message=response.get("StatusMessage"),
            document_pages=_document_pages(response),
        )
