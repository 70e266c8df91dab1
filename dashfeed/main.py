import logging
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import PlainTextResponse

from .config import Settings, get_settings
from .fetch import DocumentCache, FetchError, download_text
from .flat import parse_flat
from .logging_utils import configure_logging
from .models import DataResponse, HealthResponse, SchemaResponse
from .normalize import decode_document
from .parser import NoHeaderError, parse_records, summarize

configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

UPLOAD_EXTENSIONS = (".txt", ".tsv", ".csv")

app = FastAPI(
    title="dashfeed",
    description="Remote Tipo_Dato exports as JSON for the dashboard",
    version="0.1.0",
)
app.add_middleware(GZipMiddleware, minimum_size=1024)
if get_settings().cors:
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@lru_cache(maxsize=1)
def get_cache() -> DocumentCache:
    return DocumentCache(get_settings().cache_ttl_seconds)


async def load_document(settings: Settings, cache: DocumentCache) -> str:
    try:
        return await run_in_threadpool(cache.get_or_fetch, lambda: download_text(settings))
    except FetchError as exc:
        logger.error("FTP fetch failed: %s", exc)
        raise HTTPException(status_code=502, detail=f"FTP error: {exc}") from exc


def build_payload(text: str, settings: Settings) -> DataResponse:
    mode = "sections"
    try:
        records = parse_records(text, require_header=True)
    except NoHeaderError as exc:
        if not settings.flat_fallback:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        flat = parse_flat(text)
        logger.info("No Tipo_Dato header, parsed as flat file (delimiter %r)", flat.delimiter)
        records, mode = flat.records, "flat"

    summary = summarize(records)
    logger.info("Parsed %d records over %d columns (%s)", summary.row_count, len(summary.columns), mode)
    return DataResponse(
        updated_at=datetime.now(timezone.utc),
        mode=mode,
        columns=summary.columns,
        rows=records,
        row_count=summary.row_count,
    )


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.get("/raw", response_class=PlainTextResponse)
async def raw(settings: Settings = Depends(get_settings), cache: DocumentCache = Depends(get_cache)):
    return await load_document(settings, cache)


@app.get("/data", response_model=DataResponse)
async def data(settings: Settings = Depends(get_settings), cache: DocumentCache = Depends(get_cache)):
    text = await load_document(settings, cache)
    return build_payload(text, settings)


@app.get("/schema", response_model=SchemaResponse)
async def schema(settings: Settings = Depends(get_settings), cache: DocumentCache = Depends(get_cache)):
    payload = build_payload(await load_document(settings, cache), settings)
    return SchemaResponse(row_count=payload.row_count, columns=payload.columns)


@app.post("/parse", response_model=DataResponse)
async def parse_upload(file: UploadFile = File(...), settings: Settings = Depends(get_settings)):
    if not (file.filename or "").lower().endswith(UPLOAD_EXTENSIONS):
        raise HTTPException(status_code=422, detail="Only .txt, .tsv and .csv files are supported")

    raw = await file.read()
    return build_payload(decode_document(raw), settings)
