"""Domain and HTTP models for document analysis."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

JobId = str


class Document(BaseModel):
    """Raw upload plus its metadata. Immutable once submitted."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"

    def describe(self) -> str:
        return f"{self.filename} ({self.content_type}, {self.size} bytes)"


class S3Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: str
    key: str

    @property
    def path(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class JobStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"

    @property
    def is_success(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.PARTIAL_SUCCESS)


class PollState(str, Enum):
    """Lifecycle of a job as seen by the poller. TIMED_OUT is never reported by the provider."""

    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


class BlockType(str, Enum):
    LINE = "LINE"
    WORD = "WORD"
    CELL = "CELL"
    TABLE = "TABLE"


class Block(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: BlockType
    text: Optional[str] = None
    id: Optional[str] = None
    child_ids: List[str] = Field(default_factory=list)
    row_index: Optional[int] = None
    column_index: Optional[int] = None
    column_span: Optional[int] = None


class ResultPage(BaseModel):
    next_token: Optional[str] = None
    blocks: List[Block] = Field(default_factory=list)
    document_pages: Optional[int] = None


class JobStatusResponse(BaseModel):
    status: JobStatus
    blocks: List[Block] = Field(default_factory=list)
    next_token: Optional[str] = None
    status_message: Optional[str] = None
    document_pages: Optional[int] = None

    def to_page(self) -> ResultPage:
        return ResultPage(
            next_token=self.next_token,
            blocks=self.blocks,
            document_pages=self.document_pages,
        )


# ----------------------- HTTP SCHEMAS -----------------------


class ExtractTextResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    extracted_text: str = Field(..., alias="extractedText")
    page_count: int = Field(0, alias="pageCount")


class StoredDocumentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(..., alias="fileId", min_length=1)
    language: Optional[str] = None


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(..., alias="fileId")
    filename: str
    content_type: str = Field(..., alias="contentType")
    size: int
    url: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[dict] = None
