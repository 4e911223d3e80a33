from __future__ import annotations

"""
HTTP surface for the transcription core.

Run with ``uvicorn --factory transcriptor.server.app:create_app``; nothing is built
at import time.
"""

import json
from typing import Any, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from transcriptor.config import AppConfig, load_config
from transcriptor.export import ExportOptions, UnsupportedExportFormatError, export_transcript
from transcriptor.jobs import (
    BackendUnavailableError,
    InvalidJobTransitionError,
    JobNotFoundError,
    JobRepository,
    JobService,
    UnsupportedCapabilityError,
)
from transcriptor.transcription import (
    AudioFile,
    BackendRegistry,
    TranscriptionResult,
    TranscriptionSettings,
    TranscriptionTimeoutError,
    initialize,
    is_credential_error,
)
from transcriptor.validation import FileValidationError, sanitize_filename, validate_upload_request

from .rate_limit import RateLimiter, get_client_ip


def create_app(
    config: AppConfig | None = None,
    *,
    registry: BackendRegistry | None = None,
    job_service: JobService | None = None,
    repository: JobRepository | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Create the FastAPI application serving the transcription API."""

    config = config or load_config()
    backends = registry or initialize(config)
    if job_service is None:
        repository = repository or JobRepository(config.job_db_path)
        job_service = JobService(backends, config=config, repository=repository)
    limiter = rate_limiter or RateLimiter(
        config.rate_limit.max_requests,
        config.rate_limit.window_seconds,
    )

    app = FastAPI(
        title="Transcriptor",
        version=config.version,
        description="Audio transcription with pluggable hosted backends and subtitle export.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.registry = backends
    app.state.jobs = job_service
    app.state.rate_limiter = limiter

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if repository is None:
            return
        try:
            repository.close()
        except Exception:  # noqa: BLE001
            logger.warning("Failed to close job repository cleanly")

    def get_jobs() -> JobService:
        return app.state.jobs  # type: ignore[return-value]

    def get_registry() -> BackendRegistry:
        return app.state.registry  # type: ignore[return-value]

    @app.get("/health")
    async def healthcheck(reg: BackendRegistry = Depends(get_registry)) -> dict[str, Any]:
        available = [backend.id for backend in reg.get_available_backends()]
        limits = config.upload_limits
        return {
            "status": "healthy" if available else "degraded",
            "environment": config.environment,
            "version": config.version,
            "backends": {"available": available, "count": len(available)},
            "features": config.features.to_dict(),
            "limits": {
                "maxFileSize": limits.max_size_bytes,
                "maxDuration": limits.max_duration_minutes * 60,
                "maxFilesPerHour": config.rate_limit.max_requests,
            },
            "services": {
                "openai": bool(config.credentials.openai_api_key),
                "assemblyai": bool(config.credentials.assemblyai_api_key),
            },
        }

    @app.get("/api/transcribe")
    async def list_backends(reg: BackendRegistry = Depends(get_registry)) -> dict[str, Any]:
        backends = [descriptor.model_dump(by_alias=True) for descriptor in reg.describe_available()]
        return {"data": {"backends": backends}}

    @app.post("/api/transcribe")
    async def transcribe(
        request: Request,
        audio: Optional[UploadFile] = File(None),
        settings: Optional[str] = Form(None),
        jobs: JobService = Depends(get_jobs),
    ) -> Any:
        decision = limiter.check(get_client_ip(request))
        if not decision.allowed:
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded. Please try again later.",
                headers={
                    "X-RateLimit-Limit": str(limiter.max_requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(decision.reset_time * 1000)),
                },
            )

        if audio is None or not settings:
            raise HTTPException(status_code=400, detail="Missing audio file or settings")

        try:
            parsed = TranscriptionSettings.model_validate(json.loads(settings))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise HTTPException(status_code=400, detail="Invalid settings format") from exc

        try:
            data = await audio.read()
        finally:
            await audio.close()

        audio_file = AudioFile(
            data=data,
            filename=audio.filename or "",
            content_type=audio.content_type or "application/octet-stream",
        )

        try:
            job = await run_in_threadpool(jobs.transcribe, audio_file, parsed)
        except FileValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except (BackendUnavailableError, UnsupportedCapabilityError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except TranscriptionTimeoutError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except Exception as exc:  # noqa: BLE001
            if is_credential_error(exc):
                raise HTTPException(
                    status_code=503,
                    detail="Service configuration error. Please try again later.",
                ) from exc
            raise HTTPException(status_code=500, detail=str(exc) or "Transcription failed") from exc

        payload = {
            "success": True,
            "result": job.result.model_dump(mode="json", by_alias=True) if job.result else None,
            "job": job.model_dump(mode="json", by_alias=True),
        }
        return JSONResponse(
            content={"data": payload},
            headers={
                "X-RateLimit-Limit": str(limiter.max_requests),
                "X-RateLimit-Remaining": str(decision.remaining),
                "X-RateLimit-Reset": str(int(decision.reset_time * 1000)),
            },
        )

    @app.post("/api/upload")
    async def upload_audio(file: Optional[UploadFile] = File(None)) -> dict[str, Any]:
        if file is None:
            raise HTTPException(status_code=400, detail="No file provided")
        try:
            data = await file.read()
        finally:
            await file.close()

        audio_file = AudioFile(
            data=data,
            filename=file.filename or "",
            content_type=file.content_type or "application/octet-stream",
        )
        result = validate_upload_request(audio_file, audio_file.filename, config.upload_limits.max_size_bytes)
        if not result.is_valid:
            raise HTTPException(status_code=400, detail=result.error)

        sanitized = sanitize_filename(audio_file.filename)
        logger.info("Accepted upload {} ({} bytes)", sanitized, audio_file.size)
        return {
            "data": {
                "success": True,
                "filename": sanitized,
                "size": audio_file.size,
                "contentType": audio_file.content_type,
            }
        }

    @app.post("/api/export")
    async def export(payload: dict[str, Any]) -> Response:
        raw_result = payload.get("result")
        export_format = payload.get("format")
        filename = payload.get("filename")
        if not raw_result or not export_format or not filename:
            raise HTTPException(status_code=400, detail="Missing required fields")

        try:
            result = TranscriptionResult.model_validate(raw_result)
            options = ExportOptions.model_validate(payload.get("options") or {})
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail="Invalid transcription result") from exc

        try:
            document = export_transcript(result, export_format, options, filename)
        except UnsupportedExportFormatError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return Response(
            content=document.content,
            media_type=document.mime_type,
            headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
        )

    @app.get("/api/jobs")
    async def list_jobs(jobs: JobService = Depends(get_jobs)) -> dict[str, Any]:
        return {"data": [job.model_dump(mode="json", by_alias=True) for job in jobs.list()]}

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str, jobs: JobService = Depends(get_jobs)) -> dict[str, Any]:
        try:
            job = jobs.get(job_id)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="job not found") from None
        return {"data": job.model_dump(mode="json", by_alias=True)}

    @app.post("/api/jobs/{job_id}/cancel")
    async def cancel_job(job_id: str, jobs: JobService = Depends(get_jobs)) -> dict[str, Any]:
        try:
            job = jobs.cancel(job_id)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="job not found") from None
        except InvalidJobTransitionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from None
        return {"data": job.model_dump(mode="json", by_alias=True)}

    @app.put("/api/jobs/{job_id}/segments/{segment_id}")
    async def edit_segment(
        job_id: str,
        segment_id: str,
        payload: dict[str, Any],
        jobs: JobService = Depends(get_jobs),
    ) -> dict[str, Any]:
        text = payload.get("text")
        if not isinstance(text, str):
            raise HTTPException(status_code=400, detail="text must be a string")
        try:
            job = jobs.edit_segment(job_id, segment_id, text)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="job not found") from None
        except InvalidJobTransitionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from None
        except KeyError:
            raise HTTPException(status_code=404, detail="segment not found") from None
        return {"data": job.model_dump(mode="json", by_alias=True)}

    return app
