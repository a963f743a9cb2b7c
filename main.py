import os
import json
import time
import asyncio
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings

from modules.generation import (
    ErrorKind,
    GenerationClient,
    GenerationError,
    GenerationRequest,
    InputValidationError,
    request_from_slots,
    run_generation,
)
from modules.templates import TemplateRegistry
from modules.voice import QueueSpeechSource, TranscriptEvent, analyze_speech, analyze_transcript
from modules.utils import get_logger, set_request_context, log_request, log_error, log_transcript_analysis

LOG = get_logger()


class Settings(BaseSettings):
    HOST: str = os.getenv('HOST', '0.0.0.0')
    PORT: int = int(os.getenv('PORT', '8000'))
    ENVIRONMENT: str = os.getenv('ENVIRONMENT', 'development')
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    CORS_ORIGIN: str = os.getenv('CORS_ORIGIN', 'http://localhost:3000')
    OPENAI_REQUIRED_FOR_READY: bool = os.getenv('OPENAI_REQUIRED_FOR_READY', 'false').lower() in ('1', 'true', 'yes')


settings = Settings()

app = FastAPI(title='Teacher Resource AI Service', version='1.0.0',
              description='Turns spoken or typed teacher requests into classroom resources')

origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    # prefer incoming X-Request-ID header for cross-service tracing
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id, 'client': request.client.host if request.client else None})
    try:
        response: Response = await call_next(request)
    except Exception:
        LOG.exception('Unhandled exception in request', exc_info=True)
        body = {'success': False, 'error': 'Internal server error', 'details': 'Unexpected error', 'request_id': request_id}
        return JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    log_request(request_id, request.method, request.url.path, response.status_code, duration, ip=request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or os.urandom(8).hex()


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': datetime.now(timezone.utc).isoformat(), 'service': 'resource-ai'}


def _check_openai():
    try:
        key = os.getenv('OPENAI_API_KEY')
        if not key:
            if settings.OPENAI_REQUIRED_FOR_READY:
                return 'error: no openai key'
            return 'warn: no openai key'

        # lightweight connectivity check using the public models list endpoint
        import requests
        resp = requests.get('https://api.openai.com/v1/models', headers={'Authorization': f'Bearer {key}'}, timeout=5)
        if resp.status_code == 200:
            return 'ok'
        return f'error: openai status {resp.status_code}'
    except Exception as e:
        return f'error: {str(e)}'


def _check_templates():
    try:
        TemplateRegistry.get_instance()
        return 'ok'
    except ValueError as e:
        return f'error: {str(e)}'


@app.get('/ready')
async def ready():
    services = {'openai': _check_openai(), 'templates': _check_templates()}

    ready_ok = not services['templates'].startswith('error')
    if settings.OPENAI_REQUIRED_FOR_READY and services['openai'].startswith('error'):
        ready_ok = False

    status_code = 200 if ready_ok else 503
    return JSONResponse(status_code=status_code, content={'status': 'ready' if ready_ok else 'not ready', 'services': services})


# (status, error title) per generation failure reason
SERVICE_ERROR_STATUS = {
    'missing_credentials': (503, 'Generation service not configured'),
    'rejected_credentials': (403, 'Generation service rejected credentials'),
    'timeout': (504, 'LLM timeout'),
    'unreachable': (503, 'Generation service unreachable'),
    'rate_limited': (503, 'Generation service busy'),
    'upstream_error': (502, 'LLM API error'),
}


def _generation_error_response(err: GenerationError, request_id: str, extra: dict = None) -> JSONResponse:
    if err.kind == ErrorKind.EMPTY_RESPONSE:
        status, title = 502, 'Empty response from model'
    elif err.kind == ErrorKind.MALFORMED_OUTPUT:
        status, title = 500, 'Malformed model output'
    else:
        status, title = SERVICE_ERROR_STATUS.get(err.reason, (503, 'Generation service unavailable'))
    content = {
        'success': False,
        'error': title,
        'details': str(err),
        'error_kind': err.kind.value,
        'reason': err.reason,
        'user_message': err.user_message,
        'request_id': request_id,
    }
    if err.raw is not None:
        content['raw'] = err.raw
    content.update(extra or {})
    return JSONResponse(status_code=status, content=content)


def _validation_error_response(err: InputValidationError, request_id: str, extra: dict = None) -> JSONResponse:
    content = {
        'success': False,
        'error': 'Invalid request',
        'details': str(err),
        'fields': err.errors,
        'user_message': err.user_message,
        'request_id': request_id,
    }
    content.update(extra or {})
    return JSONResponse(status_code=400, content=content)


class AnalyzeRequest(BaseModel):
    transcript: Optional[str] = ''


class VoiceGenerateRequest(BaseModel):
    transcript: str
    overrides: Optional[GenerationRequest] = None


@app.post('/voice/analyze')
async def voice_analyze(req: AnalyzeRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    analysis = analyze_transcript(req.transcript)
    public = analysis.to_public()
    log_transcript_analysis(request_id, analysis.category.value, analysis.resource_type.value, public['slots'], len(analysis.transcript))
    return {'success': True, 'analysis': public, 'request_id': request_id}


@app.post('/api/generate')
async def api_generate(req: GenerationRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    LOG.info('resource_generation_start', extra={'request_id': request_id, 'resource_type': req.resource_type, 'subject': req.subject})
    try:
        result = await run_in_threadpool(run_generation, req, request_id)
    except InputValidationError as e:
        return _validation_error_response(e, request_id)
    except Exception as e:
        log_error(e, {'request_id': request_id, 'endpoint': '/api/generate'})
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Unexpected error', 'details': str(e), 'request_id': request_id})
    if isinstance(result, GenerationError):
        return _generation_error_response(result, request_id)
    return JSONResponse(status_code=200, content=result.to_public())


@app.post('/voice/generate')
async def voice_generate(req: VoiceGenerateRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    start = time.time()
    analysis = analyze_transcript(req.transcript)
    public = analysis.to_public()
    log_transcript_analysis(request_id, analysis.category.value, analysis.resource_type.value, public['slots'], len(analysis.transcript))

    fields = request_from_slots(analysis.slots, analysis.resource_type).model_dump()
    if req.overrides is not None:
        fields.update(req.overrides.model_dump(exclude_unset=True))
    try:
        gen_req = GenerationRequest(**fields)
        result = await run_in_threadpool(run_generation, gen_req, request_id)
    except InputValidationError as e:
        return _validation_error_response(e, request_id, extra={'analysis': public})
    except Exception as e:
        log_error(e, {'request_id': request_id, 'endpoint': '/voice/generate'})
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Unexpected error', 'details': str(e), 'request_id': request_id})
    if isinstance(result, GenerationError):
        return _generation_error_response(result, request_id, extra={'analysis': public})

    duration_ms = int((time.time() - start) * 1000)
    metadata = {
        'processing_time_ms': duration_ms,
        'model_used': GenerationClient.get_instance().model,
        'category': analysis.category.value,
    }
    return {'success': True, 'analysis': public, 'resource': result.to_public(), 'metadata': metadata, 'request_id': request_id}


@app.websocket('/voice/stream')
async def voice_stream(websocket: WebSocket):
    await websocket.accept()
    source = QueueSpeechSource()

    async def pump():
        try:
            while True:
                frame = await websocket.receive_text()
                try:
                    event = TranscriptEvent.model_validate(json.loads(frame))
                except (ValueError, ValidationError):
                    LOG.warning('voice_stream_bad_frame', extra={'frame': str(frame)[:200]})
                    continue
                await source.put(event)
        except WebSocketDisconnect:
            LOG.info('voice_stream_disconnected')
        finally:
            await source.close()

    reader = asyncio.create_task(pump())
    try:
        async for analysis in analyze_speech(source):
            await websocket.send_json({'kind': 'analysis', 'analysis': analysis.to_public()})
    except WebSocketDisconnect:
        LOG.info('voice_stream_closed_while_sending')
    finally:
        await reader


@app.on_event('startup')
async def on_startup():
    LOG.info('Resource AI service starting', extra={'env': settings.ENVIRONMENT})
    if not os.getenv('OPENAI_API_KEY'):
        LOG.warning('OPENAI_API_KEY not set; generation endpoints will return 503')
    try:
        TemplateRegistry.get_instance()
        LOG.info('TemplateRegistry ready')
    except ValueError:
        LOG.exception('template_registry_init_failed', exc_info=True)
    try:
        GenerationClient.get_instance()
        LOG.info('GenerationClient warmup triggered')
    except Exception as e:
        LOG.warning('GenerationClient warmup failed', extra={'error': str(e)})


@app.on_event('shutdown')
async def on_shutdown():
    LOG.info('Resource AI service shutting down')


if __name__ == '__main__':
    import uvicorn

    workers = int(os.getenv('WORKERS', '1'))
    # uvicorn does not support --reload with multiple workers
    if settings.ENVIRONMENT == 'development':
        workers = 1
    reload_enabled = (settings.ENVIRONMENT == 'development') and (workers == 1)

    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=reload_enabled,
        workers=workers,
    )
