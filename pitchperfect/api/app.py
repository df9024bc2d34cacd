"""
HTTP surface

The request/response functions of the interview service plus owner scoped
interview records. Successful calls answer `{"success": true, ..., "metadata"}`,
failures `{"success": false, "error": ...}` with the status derived from the
error class.
"""

from datetime import datetime
from functools import lru_cache
from typing import Literal, Optional

from fastapi import Depends, FastAPI, File, Header, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import Field

from config import config
from pitchperfect import __version__
from pitchperfect.audio.recorder import Recording
from pitchperfect.clients.elevenlabs_client import SpeechSynthesisClient, VoiceParameters
from pitchperfect.clients.whisper_client import TranscriptionClient
from pitchperfect.orchestrator.interview_engine import DialogueEngine
from pitchperfect.orchestrator.job_analyzer import JobAnalyzer
from pitchperfect.orchestrator.report_generator import ReportGenerator
from pitchperfect.orchestrator.schema import (
    CamelModel,
    DialogueRequest,
    FeedbackReport,
    JobAnalysis,
    JobDetails,
    JobPostInput,
    Role,
    TranscriptData,
    Turn,
)
from pitchperfect.storage.interview_store import InterviewStore, RecordNotFound
from pitchperfect.utils.error_handlers import (
    BadInput,
    InterviewError,
    Unauthorized,
    http_status_for,
)


# --- request bodies ---

class AnalyzeJobPostRequest(CamelModel):
    job_description: str = ""
    company_name: Optional[str] = None
    job_title: Optional[str] = None
    url: Optional[str] = None
    save: bool = False


class FeedbackReportRequest(CamelModel):
    job_analysis: Optional[JobAnalysis] = None
    conversation_history: list[Turn] = Field(default_factory=list)
    interview_duration: int = 0


class TextToSpeechRequest(CamelModel):
    text: str = ""
    voice_id: Optional[str] = None
    stability: Optional[float] = Field(None, ge=0.0, le=1.0)
    similarity_boost: Optional[float] = Field(None, ge=0.0, le=1.0)
    style: Optional[float] = Field(None, ge=0.0, le=1.0)
    speaker_boost: Optional[bool] = None

    def voice(self) -> VoiceParameters:
        overrides = {
            name: value
            for name, value in self.model_dump(exclude={"text"}).items()
            if value is not None
        }
        return VoiceParameters(**overrides)


class InterviewUpsertRequest(CamelModel):
    id: Optional[str] = None
    job_details: JobDetails
    transcript: Optional[TranscriptData] = None
    report_data: Optional[FeedbackReport] = None
    duration_minutes: Optional[int] = None


# --- dependencies ---

@lru_cache
def get_store() -> InterviewStore:
    return InterviewStore()


@lru_cache
def get_analyzer() -> JobAnalyzer:
    return JobAnalyzer()


@lru_cache
def get_engine() -> DialogueEngine:
    return DialogueEngine()


@lru_cache
def get_reporter() -> ReportGenerator:
    return ReportGenerator()


@lru_cache
def get_transcriber() -> TranscriptionClient:
    return TranscriptionClient()


@lru_cache
def get_synthesizer() -> SpeechSynthesisClient:
    return SpeechSynthesisClient()


def get_owner(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized("Missing X-User-Id header", status=401)
    return x_user_id.strip()


def _now() -> str:
    return datetime.now().isoformat()


def error_response(error: InterviewError) -> JSONResponse:
    status = 404 if isinstance(error, RecordNotFound) else http_status_for(error)
    return JSONResponse(
        status_code=status,
        content={
            "success": False,
            "error": error.user_message,
            "kind": error.kind,
            "details": error.args[0] if error.args else None,
        },
    )


def create_app() -> FastAPI:
    app = FastAPI(title="PitchPerfect Interview Service", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InterviewError)
    async def interview_error_handler(request, exc: InterviewError):
        logger.warning(f"{request.url.path} failed: {exc.kind}: {exc}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request, exc: RequestValidationError):
        logger.warning(f"{request.url.path} rejected: invalid request body")
        return error_response(BadInput(f"Invalid request: {exc.errors()}"))

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": _now(),
            "version": __version__,
            "services": {
                "openai": "configured" if config.api.openai_api_key else "missing key",
                "elevenlabs": "configured" if config.api.elevenlabs_api_key else "missing key",
            },
        }

    # --- request/response functions ---

    @app.post("/functions/v1/analyze-job-post")
    async def analyze_job_post(
        body: AnalyzeJobPostRequest,
        analyzer: JobAnalyzer = Depends(get_analyzer),
        store: InterviewStore = Depends(get_store),
        x_user_id: Optional[str] = Header(None),
    ):
        analysis = await analyzer.analyze(body.job_description, body.company_name, body.job_title)

        interview_id = None
        if body.save:
            owner = get_owner(x_user_id)
            raw_input = JobPostInput(
                title=body.job_title or "",
                company=body.company_name or "",
                description=body.job_description,
                url=body.url,
            )
            interview_id = store.create_saved_configuration(owner, raw_input, analysis).id

        return {
            "success": True,
            "analysis": analysis.model_dump(mode="json", by_alias=True),
            "interviewId": interview_id,
            "metadata": {
                "analyzedAt": _now(),
                "model": analyzer.model,
                "inputLength": len(body.job_description),
            },
        }

    @app.post("/functions/v1/interview-engine")
    async def interview_engine(
        body: DialogueRequest,
        engine: DialogueEngine = Depends(get_engine),
    ):
        turn = await engine.next_question(body)
        asked = sum(1 for t in body.conversation_history if t.role == Role.INTERVIEWER)
        return {
            "success": True,
            "interview": turn.model_dump(mode="json", by_alias=True, exclude_none=True),
            "metadata": {
                "stage": body.interview_stage.value,
                "questionCount": asked + 1,
                "timestamp": _now(),
                "model": engine.model,
            },
        }

    @app.post("/functions/v1/transcribe-audio")
    async def transcribe_audio(
        audio: Optional[UploadFile] = File(None),
        transcriber: TranscriptionClient = Depends(get_transcriber),
    ):
        if audio is None:
            raise BadInput("No audio file provided")
        data = await audio.read()
        recording = Recording(
            data=data,
            mime_type=audio.content_type or "",
            duration=0.0,
        )
        text = await transcriber.transcribe(recording)
        return {
            "success": True,
            "transcription": text,
            "metadata": {
                "language": transcriber.language,
                "transcribedAt": _now(),
                "fileSize": recording.size,
                "fileType": recording.mime_type,
            },
        }

    @app.post("/functions/v1/text-to-speech")
    async def text_to_speech(
        body: TextToSpeechRequest,
        synthesizer: SpeechSynthesisClient = Depends(get_synthesizer),
    ):
        audio = await synthesizer.synthesize(body.text, body.voice())
        return Response(
            content=audio,
            media_type="audio/mpeg",
            headers={"Content-Length": str(len(audio))},
        )

    @app.post("/functions/v1/generate-feedback-report")
    async def generate_feedback_report(
        body: FeedbackReportRequest,
        reporter: ReportGenerator = Depends(get_reporter),
    ):
        report = await reporter.generate(body.job_analysis, body.conversation_history, body.interview_duration)
        return {
            "success": True,
            "report": report.model_dump(mode="json", by_alias=True),
            "metadata": {
                "generatedAt": _now(),
                "interviewDuration": body.interview_duration,
                "totalExchanges": len(body.conversation_history),
                "model": reporter.model,
            },
        }

    # --- interview records ---

    @app.get("/interviews")
    async def list_interviews(
        status: Optional[Literal["saved", "completed"]] = None,
        owner: str = Depends(get_owner),
        store: InterviewStore = Depends(get_store),
    ):
        records = store.list(owner, status)
        return {
            "success": True,
            "interviews": [r.to_public() for r in records],
            "metadata": {"count": len(records), "stats": store.stats(owner)},
        }

    @app.post("/interviews", status_code=201)
    async def save_interview(
        body: InterviewUpsertRequest,
        owner: str = Depends(get_owner),
        store: InterviewStore = Depends(get_store),
    ):
        if body.transcript is None:
            record = store.create_saved_configuration(
                owner, body.job_details.raw_input, body.job_details.analysis
            )
        else:
            record = store.save_completed(
                owner=owner,
                job_details=body.job_details,
                messages=body.transcript.messages,
                setup=body.transcript.config,
                report=body.report_data,
                duration_minutes=body.duration_minutes,
                record_id=body.id,
            )
        return {"success": True, "interview": record.to_public()}

    @app.get("/interviews/{interview_id}")
    async def get_interview(
        interview_id: str,
        owner: str = Depends(get_owner),
        store: InterviewStore = Depends(get_store),
    ):
        return {"success": True, "interview": store.get(owner, interview_id).to_public()}

    @app.delete("/interviews/{interview_id}")
    async def delete_interview(
        interview_id: str,
        owner: str = Depends(get_owner),
        store: InterviewStore = Depends(get_store),
    ):
        store.delete(owner, interview_id)
        return {"success": True}

    return app


app = create_app()
