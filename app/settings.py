"""Application settings for the medical report parser."""

from functools import lru_cache
from typing import Dict, List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Languages offered by the upload page, keyed by ISO 639-1 code.
SUPPORTED_LANGUAGES: Dict[str, str] = {
    "en": "English",
    "hi": "Hindi",
    "bn": "Bengali",
    "te": "Telugu",
    "mr": "Marathi",
    "ta": "Tamil",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MED_REPORT_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field("Medical Report Parser", description="Service title")
    log_level: str = Field("INFO", description="Root level for the medical_report loggers")

    aws_region: str = Field("us-east-1", description="AWS region for Textract, S3 and Translate")
    s3_bucket: str = Field("medical-report-uploads", description="Bucket holding uploaded reports")
    s3_prefix: str = Field("uploads/", description="Key prefix for uploaded reports")
    public_url_expiry_seconds: int = Field(
        3600, description="Lifetime of presigned download URLs"
    )

    max_upload_bytes: int = Field(
        10 * 1024 * 1024,
        description="Largest accepted document. Checked before any provider call.",
    )
    allowed_content_types: List[str] = Field(
        default_factory=lambda: ["application/pdf", "image/jpeg", "image/png"],
        description="MIME types accepted by file intake",
    )

    extraction_engine: Literal["textract", "local_pdf"] = Field(
        "textract",
        description="Textract OCR, or PyPDF2 text extraction for PDFs with embedded text",
    )
    submission_strategy: Literal["inline_bytes", "object_store"] = Field(
        "inline_bytes",
        description="Send bytes inline to Textract or point it at the stored S3 object",
    )
    execution_mode: Literal["synchronous", "asynchronous"] = Field(
        "asynchronous",
        description="Single blocking Textract call, or start a job and poll it",
    )
    textract_features: List[str] = Field(
        default_factory=lambda: ["TABLES"],
        description="Analysis features. Empty means plain text detection.",
    )

    poll_max_attempts: int = Field(30, ge=1, description="Status calls before giving up")
    poll_interval_seconds: float = Field(1.5, ge=0, description="Wait between status calls")
    poll_jitter_seconds: float = Field(0.0, ge=0, description="Random extra wait per attempt")

    max_pdf_pages: Optional[int] = Field(
        20,
        description="Limit number of pages processed locally to keep latency low in serverless runtimes.",
    )

    source_language: str = Field("en", description="Language the reports are written in")
    transform_provider: Literal["none", "openai", "translate"] = Field(
        "openai", description="Post-processing applied when another language is requested"
    )
    on_transform_error: Literal["fallback", "propagate"] = Field(
        "fallback",
        description="Return untransformed text or fail the request when post-processing fails",
    )
    openai_api_key: str = Field("", description="API key for the summarization provider")
    openai_model: str = Field("gpt-4", description="Chat model used for summaries")
    openai_timeout_seconds: int = Field(60, description="Timeout for a single completion")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
