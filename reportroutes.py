import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse

from app.intake import document_from_upload, resolve_language
from app.models import ErrorResponse, ExtractTextResponse, StoredDocumentRequest, UploadResponse
from app.pipeline import ReportPipeline, build_pipeline
from app.settings import SUPPORTED_LANGUAGES, Settings, get_settings

reportrouter = APIRouter()
ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
logger = logging.getLogger("medical_report.routes")


def get_pipeline(request: Request) -> ReportPipeline:
    """Return the process-wide pipeline, building it on first use."""

    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = build_pipeline(get_settings())
        request.app.state.pipeline = pipeline
    return pipeline


# ----------------------- ROUTES -----------------------


@reportrouter.get("/config")
async def get_report_config(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Expose upload limits and the available languages for UI clients."""

    return {
        "allowedContentTypes": settings.allowed_content_types,
        "maxUploadBytes": settings.max_upload_bytes,
        "sourceLanguage": settings.source_language,
        "languages": [{"value": code, "label": name} for code, name in SUPPORTED_LANGUAGES.items()],
        "extractionEngine": settings.extraction_engine,
        "executionMode": settings.execution_mode,
        "submissionStrategy": settings.submission_strategy,
    }


@reportrouter.post("/extract-text", response_model=ExtractTextResponse, responses=ERROR_RESPONSES)
async def extract_text(
    file: Optional[UploadFile] = File(None),
    language: Optional[str] = Form(None),
    pipeline: ReportPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
) -> ExtractTextResponse:
    """
    Upload a report (PDF/JPEG/PNG) and get its text back, summarized in the
    requested language when it differs from the source language.
    """
    document = await document_from_upload(file)
    target_language = resolve_language(language, settings)
    logger.info("Received %s, target language %s", document.describe(), target_language)
    return await run_in_threadpool(pipeline.process, document, target_language)


@reportrouter.post("/extract-text/stored", response_model=ExtractTextResponse, responses=ERROR_RESPONSES)
async def extract_stored_text(
    body: StoredDocumentRequest,
    pipeline: ReportPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
) -> ExtractTextResponse:
    """Process a report previously saved through ``/uploads``."""

    target_language = resolve_language(body.language, settings)
    return await run_in_threadpool(pipeline.process_stored, body.file_id, target_language)


@reportrouter.post("/uploads", response_model=UploadResponse, responses=ERROR_RESPONSES)
async def upload_report(
    file: Optional[UploadFile] = File(None),
    pipeline: ReportPipeline = Depends(get_pipeline),
) -> UploadResponse:
    document = await document_from_upload(file)
    return await run_in_threadpool(pipeline.store_document, document)


@reportrouter.get("/upload", response_class=HTMLResponse)
async def report_upload_page():
    options = "\n".join(
        f'                <option value="{code}">{name}</option>'
        for code, name in SUPPORTED_LANGUAGES.items()
    )
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Medical Report Parser</title>
        <meta charset="utf-8" />
        <style>
            body { font-family: Arial, sans-serif; max-width: 800px; margin: 40px auto; }
            h1 { margin-bottom: 0.5rem; }
            .card { border: 1px solid #ddd; padding: 16px; border-radius: 8px; }
            .result { white-space: pre-wrap; background: #f7f7f7; padding: 12px; margin-top: 16px; border-radius: 4px; }
            .error { color: #b00020; margin-top: 8px; }
            button { padding: 8px 16px; cursor: pointer; }
            input[type="file"], select { margin-top: 8px; margin-bottom: 12px; }
        </style>
    </head>
    <body>
        <h1>Medical Report Parser</h1>
        <p>Upload a report (PDF, JPEG or PNG) and read its results in your language.</p>

        <div class="card">
            <input id="file-input" type="file" accept="application/pdf,image/jpeg,image/png" />
            <br/>
            <select id="language">
__OPTIONS__
            </select>
            <br/>
            <button onclick="upload()">Upload &amp; Extract</button>
            <div id="status"></div>
            <div id="error" class="error"></div>
            <div id="result" class="result" style="display:none;"></div>
        </div>

        <script>
            async function upload() {
                const fileInput = document.getElementById('file-input');
                const statusEl = document.getElementById('status');
                const errorEl = document.getElementById('error');
                const resultEl = document.getElementById('result');
                errorEl.textContent = '';
                resultEl.style.display = 'none';
                resultEl.textContent = '';

                if (!fileInput.files.length) {
                    errorEl.textContent = 'Please choose a file first.';
                    return;
                }

                const formData = new FormData();
                formData.append('file', fileInput.files[0]);
                formData.append('language', document.getElementById('language').value);

                statusEl.textContent = 'Uploading and processing...';

                try {
                    const resp = await fetch('/reports/extract-text', {
                        method: 'POST',
                        body: formData
                    });

                    const json = await resp.json();
                    if (!resp.ok) {
                        throw new Error(json.error || ('HTTP ' + resp.status));
                    }

                    statusEl.textContent = 'Processed ' + json.pageCount + ' page(s).';
                    resultEl.style.display = 'block';
                    resultEl.textContent = json.extractedText;
                } catch (err) {
                    console.error(err);
                    statusEl.textContent = '';
                    errorEl.textContent = 'Error: ' + err.message;
                }
            }
        </script>
    </body>
    </html>
    """.replace("__OPTIONS__", options)
