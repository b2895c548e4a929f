"""FastAPI application entrypoint for intgen service mode."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Iterator, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import IntgenConfig
from ..engine import IntegrationEngine
from ..errors import IntgenError, InvalidRequestError, NotFoundError
from ..models import GenerationRequest, ValidationRequest
from ..wire import to_wire, validation_wire


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectRequest(_WireModel):
    project_path: str


class SuggestionRequest(_WireModel):
    env_var_names: List[str] = Field(default_factory=list)
    project_path: Optional[str] = None


class ValidationPayload(_WireModel):
    provider_id: str
    framework: str
    template_id: Optional[str] = None
    features: List[str] = Field(default_factory=list)

    def to_request(self) -> ValidationRequest:
        return ValidationRequest(
            provider_id=self.provider_id,
            framework=self.framework,
            template_id=self.template_id,
            features=tuple(self.features),
        )


class BatchValidationPayload(_WireModel):
    requests: List[ValidationPayload]


class GenerationPayload(_WireModel):
    provider_id: str
    framework: str = ""
    template_id: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    env_var_names: List[str] = Field(default_factory=list)
    project_path: Optional[str] = None
    output_path: Optional[str] = None
    use_llm_enhancement: bool = False

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            provider_id=self.provider_id,
            framework=self.framework,
            template_id=self.template_id,
            features=tuple(self.features),
            env_var_names=tuple(self.env_var_names),
            project_path=self.project_path,
            output_path=self.output_path,
            use_llm_enhancement=self.use_llm_enhancement,
        )


class SessionStarted(_WireModel):
    session_id: str


class CancelResponse(_WireModel):
    cancelled: bool


class CacheClearResponse(_WireModel):
    cleared: int


class HealthResponse(BaseModel):
    status: str


def _sse_lines(events: Iterator[Any]) -> Iterator[str]:
    for event in events:
        payload = json.dumps(to_wire(event))
        yield f"event: {event.kind}\ndata: {payload}\n\n"


def _default_engine() -> IntegrationEngine:
    return IntegrationEngine()


async def _in_executor(func: Callable[[], Any]) -> Any:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    engine_factory: Callable[[], IntegrationEngine] = _default_engine,
) -> FastAPI:
    """Create the FastAPI application exposing intgen operations.

    The engine is built once per application because sessions and the result
    cache must outlive a single request.
    """

    app = FastAPI(title="intgen Service", version="1.0.0")
    engine = engine_factory()

    async def get_engine() -> IntegrationEngine:
        return engine

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/frameworks/detect")
    async def detect_frameworks(
        payload: ProjectRequest,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        results = await _in_executor(lambda: engine.detect_frameworks(payload.project_path))
        return to_wire(results)

    @app.post("/projects/analyze")
    async def analyze_project(
        payload: ProjectRequest,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        analysis = await _in_executor(lambda: engine.analyze_project(payload.project_path))
        return to_wire(analysis)

    @app.post("/templates/suggestions")
    async def template_suggestions(
        payload: SuggestionRequest,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        suggestions = await _in_executor(
            lambda: engine.get_template_suggestions(payload.env_var_names, payload.project_path)
        )
        return to_wire(suggestions)

    @app.post("/validation")
    async def validate(
        payload: ValidationPayload,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        result = engine.validate_combination(
            payload.provider_id,
            payload.framework,
            template_id=payload.template_id,
            features=tuple(payload.features),
        )
        return validation_wire(result)

    @app.post("/validation/batch")
    async def validate_batch(
        payload: BatchValidationPayload,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        batch = engine.batch_validate([item.to_request() for item in payload.requests])
        return {
            "results": [validation_wire(result) for result in batch.results],
            "summary": to_wire(batch.summary),
        }

    @app.get("/providers/{provider_id}/compatibility")
    async def provider_compatibility(
        provider_id: str,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        return to_wire(engine.provider_compatibility(provider_id))

    @app.post("/sessions/generation", response_model=SessionStarted, status_code=202)
    async def start_generation(
        payload: GenerationPayload,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> SessionStarted:
        return SessionStarted(session_id=engine.start_generation(payload.to_request()))

    @app.post("/sessions/preview", response_model=SessionStarted, status_code=202)
    async def start_preview(
        payload: GenerationPayload,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> SessionStarted:
        return SessionStarted(session_id=engine.start_preview(payload.to_request()))

    @app.get("/sessions")
    async def list_sessions(engine: IntegrationEngine = Depends(get_engine)) -> Any:
        return to_wire(engine.list_active_sessions())

    @app.get("/sessions/{session_id}")
    async def session_status(
        session_id: str,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        return to_wire(engine.get_session_status(session_id))

    @app.post("/sessions/{session_id}/cancel", response_model=CancelResponse)
    async def cancel_session(
        session_id: str,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> CancelResponse:
        return CancelResponse(cancelled=engine.cancel_session(session_id))

    @app.get("/sessions/{session_id}/events")
    async def poll_events(
        session_id: str,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        return to_wire(engine.poll_events(session_id))

    @app.get("/sessions/{session_id}/stream")
    async def stream_events(
        session_id: str,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> StreamingResponse:
        events = engine.subscribe(session_id)
        return StreamingResponse(_sse_lines(events), media_type="text/event-stream")

    @app.get("/sessions/{session_id}/result")
    async def session_result(
        session_id: str,
        engine: IntegrationEngine = Depends(get_engine),
    ) -> Any:
        result = engine.get_session_result(session_id)
        if result is None:
            raise NotFoundError(f"Session {session_id} has no result yet")
        return to_wire(result)

    @app.delete("/cache", response_model=CacheClearResponse)
    async def clear_cache(engine: IntegrationEngine = Depends(get_engine)) -> CacheClearResponse:
        return CacheClearResponse(cleared=engine.clear_cache())

    @app.get("/cache/stats")
    async def cache_stats(engine: IntegrationEngine = Depends(get_engine)) -> Any:
        return to_wire(engine.cache_stats())

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_: Any, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(_: Any, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(IntgenError)
    async def intgen_error_handler(
        _: Any, exc: IntgenError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1",
    port: int = 8000,
    *,
    config: IntgenConfig | None = None,
) -> None:  # pragma: no cover - integration path
    app = create_app(lambda: IntegrationEngine(config))
    uvicorn.run(app, host=host, port=port)
