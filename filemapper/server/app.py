"""FastAPI application exposing file conversion as background jobs.

WHY: Other systems (schedulers, upload portals, curl) need to convert
files without shelling out to the CLI. An HTTP API with background jobs
lets them upload a file, poll for status, and download the result.

HOW: POST /conversions stores the upload in a job's temp directory,
picks the mapping (uploaded document, mapping name, or routing by file
name against the mappings folder) and runs core.engine.convert_file in
a background task. Other endpoints poll, download, cancel, and list the
formats and mappings the service knows.

RULES:
- Error responses use a consistent ErrorResponse schema
- A mapping is fixed when the job is created; a bad mapping is a 4xx,
  never a failed job
- Background conversion uses FastAPI BackgroundTasks
- The job store is a module-level singleton
- Upload filenames are reduced to their base name
- The mappings folder is read in the threadpool, never on the event loop
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, List, Optional

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from filemapper import __version__, config
from filemapper.batch import resolve_mapping
from filemapper.core.engine import convert_file
from filemapper.core.errors import ConfigurationError, ConversionCancelled, FileMapperError, TransformationWarning
from filemapper.core.models import FileType, MappingDefinition
from filemapper.core.serialization import load_mappings_dir, mapping_from_dict
from filemapper.server.jobs import Job, JobStatus, JobStore
from filemapper.server.models import (
    ErrorResponse,
    FormatInfo,
    HealthResponse,
    JobCreatedResponse,
    JobResponse,
    MappingInfo,
    WarningInfo,
)
from filemapper.writers import WRITERS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_store = JobStore()


async def _periodic_cleanup() -> None:
    """Run job cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="FileMapper Conversion API",
    description=(
        "Convert records between JSON, CSV, XML, XLSX and fixed-width files "
        "using declarative mapping documents. Submit a file, poll for status, "
        "and download the converted result."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _job_to_response(job: Job) -> JobResponse:
    return JobResponse(
        id=job.id,
        status=job.status.value,
        filename=job.filename,
        mapping=job.mapping.name,
        created_at=job.created_at,
        records=job.records,
        warnings=[
            WarningInfo(record_index=w.record_index, target_name=w.target_name, message=w.message)
            for w in job.warnings
        ],
        error=job.error,
        output_file=job.output_file,
    )


def _available_mappings() -> List[MappingDefinition]:
    try:
        return load_mappings_dir(config.MAPPINGS_DIR)
    except ConfigurationError:
        logger.warning("Mappings folder %s not found", config.MAPPINGS_DIR)
        return []


def _select_mapping(
    filename: str,
    mapping_name: Optional[str],
    mapping_document: Optional[bytes],
) -> MappingDefinition:
    """Pick the mapping for an upload, raising HTTPException when none fits."""
    if mapping_document is not None:
        try:
            return mapping_from_dict(json.loads(mapping_document.decode("utf-8-sig")))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise HTTPException(status_code=422, detail="Mapping file is not valid JSON: {}".format(exc))
        except ConfigurationError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    mappings = _available_mappings()
    if mapping_name:
        for mapping in mappings:
            if mapping.name.lower() == mapping_name.lower():
                return mapping
        raise HTTPException(status_code=404, detail="Mapping not found: {}".format(mapping_name))

    mapping = resolve_mapping(filename, mappings)
    if mapping is None:
        raise HTTPException(
            status_code=422,
            detail="No mapping applies to '{}'; pass a mapping name or mapping file".format(filename),
        )
    return mapping


def _run_conversion(job_id: str, store: JobStore) -> None:
    """Convert a job's uploaded file and record the outcome.

    RULES:
    - Status goes pending -> converting -> completed | failed | cancelled
    - Per-field warnings are stored on the job as they arrive
    - Unexpected exceptions mark the job failed and are logged with traceback
    - A job cancelled while its output is being saved leaves no folder behind
    """
    job = store.get_job(job_id)
    if job is None:
        return

    def on_warning(record_index: int, target_name: str, message: str) -> None:
        store.add_warning(job_id, TransformationWarning(record_index, target_name, message))

    extension = config.FILE_TYPE_EXTENSIONS[job.mapping.target_type]
    output_name = "{}{}".format(Path(job.filename).stem, extension)
    media_type = WRITERS[job.mapping.target_type].media_type

    store.update_job(job_id, status=JobStatus.CONVERTING)
    try:
        records = convert_file(
            job.source_path,
            job.work_dir / output_name,
            job.mapping,
            on_warning=on_warning,
            cancel_event=job.cancel_event,
        )
    except ConversionCancelled:
        store.update_job(job_id, status=JobStatus.CANCELLED)
        return
    except FileMapperError as exc:
        logger.error("Conversion failed for job %s: %s", job_id, exc)
        store.update_job(job_id, status=JobStatus.FAILED, error=str(exc))
        return
    except Exception as exc:
        logger.exception("Conversion failed for job %s", job_id)
        store.update_job(job_id, status=JobStatus.FAILED, error=str(exc))
        return

    if job.cancel_event.is_set():
        # Cancelled during the save; the store no longer removes this folder
        store.remove_work_dir(job.work_dir)
        return

    store.update_job(
        job_id,
        status=JobStatus.COMPLETED,
        records=records,
        output_file=output_name,
        media_type=media_type,
    )


# ---------------------------------------------------------------------------
# Endpoints: Conversions
# ---------------------------------------------------------------------------


@app.post(
    "/conversions",
    response_model=JobCreatedResponse,
    status_code=201,
    tags=["conversions"],
    summary="Submit a conversion job",
    description=(
        "Upload a source file. The mapping is an uploaded mapping document, a "
        "mapping name from the server's mappings folder, or (when neither is "
        "given) the mapping routed by the file's name. Returns a job ID "
        "immediately; poll GET /conversions/{id} for status."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Named mapping not found"},
        422: {"model": ErrorResponse, "description": "Invalid mapping or no mapping applies"},
        429: {"model": ErrorResponse, "description": "Too many concurrent jobs"},
    },
)
async def create_conversion(
    background_tasks: BackgroundTasks,
    file: Annotated[
        UploadFile,
        File(description="Source file to convert"),
    ],
    mapping: Annotated[
        Optional[str],
        Form(description="Name of a mapping in the server's mappings folder."),
    ] = None,
    mapping_file: Annotated[
        Optional[UploadFile],
        File(description="Mapping document (.map.json) to apply instead of a stored one."),
    ] = None,
) -> JobCreatedResponse:
    # Sanitize filename to prevent path traversal
    filename = Path(file.filename or "upload").name

    document = await mapping_file.read() if mapping_file is not None else None
    selected = await run_in_threadpool(_select_mapping, filename, mapping, document)

    try:
        job = job_store.create_job(filename=filename, mapping=selected)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))

    job.source_path.write_bytes(await file.read())
    background_tasks.add_task(_run_conversion, job.id, job_store)

    return JobCreatedResponse(
        id=job.id,
        status=job.status.value,
        filename=job.filename,
        mapping=selected.name,
    )


@app.get(
    "/conversions/{job_id}",
    response_model=JobResponse,
    tags=["conversions"],
    summary="Get conversion job status",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def get_conversion(job_id: str) -> JobResponse:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return _job_to_response(job)


@app.get(
    "/conversions/{job_id}/file",
    tags=["conversions"],
    summary="Download the converted file",
    responses={
        404: {"model": ErrorResponse, "description": "Job or file not found"},
        409: {"model": ErrorResponse, "description": "Job not yet completed"},
    },
)
async def download_conversion(job_id: str) -> Response:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))

    if job.status != JobStatus.COMPLETED or job.output_file is None:
        raise HTTPException(
            status_code=409,
            detail="Job is not completed (current status: {}).".format(job.status.value),
        )

    fpath = job.work_dir / job.output_file
    if not fpath.exists():
        raise HTTPException(status_code=404, detail="File '{}' not found on disk.".format(job.output_file))

    return Response(
        content=fpath.read_bytes(),
        media_type=job.media_type or "application/octet-stream",
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(job.output_file)},
    )


@app.delete(
    "/conversions/{job_id}",
    status_code=204,
    tags=["conversions"],
    summary="Cancel or delete a conversion job",
    description="Stops a running conversion and removes the job and its files.",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def delete_conversion(job_id: str) -> Response:
    if not job_store.cancel_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Formats and mappings
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["formats"],
    summary="List supported file formats",
)
async def list_formats() -> List[FormatInfo]:
    return [
        FormatInfo(
            key=file_type.value,
            extension=config.FILE_TYPE_EXTENSIONS[file_type],
            hierarchical=file_type.is_hierarchical,
        )
        for file_type in FileType
    ]


@app.get(
    "/mappings",
    response_model=List[MappingInfo],
    tags=["mappings"],
    summary="List mappings in the server's mappings folder",
)
def list_mappings() -> List[MappingInfo]:
    return [
        MappingInfo(
            name=m.name,
            source_type=m.source_type.value,
            target_type=m.target_type.value,
            fields=len(m.field_mappings),
            expected_file_name=m.expected_file_name,
            file_name_is_prefix=m.file_name_is_prefix,
        )
        for m in _available_mappings()
    ]


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the filemapper-api console script."""
    import uvicorn
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
