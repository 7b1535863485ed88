"""Post-processing of extracted text: medical summaries and translation."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
import openai
from botocore.exceptions import BotoCoreError, ClientError

from app.aws_utils import get_translate_client
from app.errors import TransformError
from app.settings import SUPPORTED_LANGUAGES, Settings

logger = logging.getLogger("medical_report.transform")

SUMMARY_PROMPT = (
    "Extract medical test results and interpretations from the given text and format them "
    "in {language}. Follow this format:**Test Name:** <value>\n - **Result:** <value>\n"
    " - **Reference Range:** <value>\n - **Interpretation Summary:** <summary>. "
    "Keep it concise and to the point."
)

# Amazon Translate rejects requests above 10,000 UTF-8 bytes.
TRANSLATE_MAX_BYTES = 9000


class TextTransformer(ABC):
    @abstractmethod
    def transform(self, text: str, target_language: str) -> str:
        """Return ``text`` rendered in ``target_language``."""


class OpenAISummarizer(TextTransformer):
    """Summarize medical results in the target language with a chat model."""

    def __init__(self, *, api_key: str, model: str, timeout_seconds: int, client=None) -> None:
        self._client = client
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._model = model

    def _get_client(self):
        # Built lazily: openai.OpenAI refuses to construct without a key.
        if self._client is None:
            try:
                self._client = openai.OpenAI(api_key=self._api_key or None, timeout=self._timeout_seconds)
            except openai.OpenAIError as exc:
                raise TransformError(f"Summarization provider is not configured: {exc}", {"provider": "openai"}) from exc
        return self._client

    def transform(self, text: str, target_language: str) -> str:
        language = SUPPORTED_LANGUAGES.get(target_language, target_language)
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SUMMARY_PROMPT.format(language=language)},
                    {"role": "user", "content": text},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise TransformError(f"Summarization provider network error: {exc}", {"provider": "openai"}) from exc
        except openai.APIError as exc:
            raise TransformError(f"Summarization provider API error: {exc}", {"provider": "openai"}) from exc

        if not response.choices or response.choices[0].message.content is None:
            raise TransformError("Summarization provider returned an empty response", {"provider": "openai"})
        return response.choices[0].message.content


def _chunk_lines(text: str, max_bytes: int) -> List[str]:
    """Split on line boundaries so each chunk stays under ``max_bytes``."""

    chunks: List[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line.encode("utf-8")) > max_bytes:
            # A single oversized line is cut at a character boundary.
            cut = max_bytes
            while len(line[:cut].encode("utf-8")) > max_bytes:
                cut -= 1
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:cut])
            line = line[cut:]
        if len((current + line).encode("utf-8")) > max_bytes:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


class AWSTranslateTransformer(TextTransformer):
    """Translate text with Amazon Translate, one request per chunk, in order."""

    def __init__(self, client, source_language: str = "en", max_bytes: int = TRANSLATE_MAX_BYTES) -> None:
        self._client = client
        self._source_language = source_language
        self._max_bytes = max_bytes

    def transform(self, text: str, target_language: str) -> str:
        translated: List[str] = []
        for chunk in _chunk_lines(text, self._max_bytes):
            if not chunk.strip():
                translated.append(chunk)
                continue
            try:
                response = self._client.translate_text(
                    Text=chunk,
                    SourceLanguageCode=self._source_language,
                    TargetLanguageCode=target_language,
                )
            except (BotoCoreError, ClientError) as exc:
                raise TransformError(f"Translation failed: {exc}", {"provider": "translate"}) from exc
            translated.append(response["TranslatedText"])
        return "".join(translated)


class PostProcessor:
    """Applies the configured transformer unless no transformation is needed."""

    def __init__(self, transformer: Optional[TextTransformer], source_language: str = "en") -> None:
        self._transformer = transformer
        self.source_language = source_language

    def needs_transform(self, target_language: str) -> bool:
        return self._transformer is not None and target_language != self.source_language

    def transform(self, text: str, target_language: str) -> str:
        if not self.needs_transform(target_language):
            return text

        logger.info("Transforming %s chars into %s", len(text), target_language)
        try:
            return self._transformer.transform(text, target_language)
        except TransformError as exc:
            logger.error("Post-processing into %s failed: %s", target_language, exc)
            raise


def build_post_processor(settings: Settings) -> PostProcessor:
    transformer: Optional[TextTransformer] = None
    if settings.transform_provider == "openai":
        transformer = OpenAISummarizer(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    elif settings.transform_provider == "translate":
        transformer = AWSTranslateTransformer(
            get_translate_client(settings.aws_region),
            source_language=settings.source_language,
        )
    return PostProcessor(transformer, source_language=settings.source_language)
