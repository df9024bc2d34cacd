"""
Interview session controller

Drives one interview from the opening question to the stored report:

    INITIALIZING -> AWAITING_CANDIDATE -> PROCESSING_TURN -> AWAITING_CANDIDATE ...
                 -> COMPLETING -> COMPLETED
    INITIALIZING -> ERRORED (initialize() again to retry)

All state lives in one serializable SessionState. Turns are committed only
after the engine answered, so a failed call never leaves half a turn behind.
Nothing is retried automatically; retry() is the explicit user action.
"""

import asyncio
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from loguru import logger
from pydantic import BaseModel, Field

from config import config
from pitchperfect.orchestrator.schema import (
    DialogueRequest,
    DialogueTurn,
    FeedbackReport,
    InterviewSetup,
    JobDetails,
    Role,
    Stage,
    Turn,
)
from pitchperfect.utils.error_handlers import ErrorCategory, InterviewError, describe_error


class SessionPhase(str, Enum):
    INITIALIZING = "initializing"
    AWAITING_CANDIDATE = "awaiting_candidate"
    PROCESSING_TURN = "processing_turn"
    COMPLETING = "completing"
    COMPLETED = "completed"
    ERRORED = "errored"


class SessionError(BaseModel):
    kind: str
    message: str
    retryable: bool

    @classmethod
    def from_exception(cls, exc: BaseException) -> "SessionError":
        if isinstance(exc, InterviewError):
            # capture/validation problems are fixed by the user, not by resending
            retryable = exc.category in (ErrorCategory.TRANSPORT, ErrorCategory.RESULT)
            return cls(kind=exc.kind, message=exc.user_message, retryable=retryable)
        return cls(kind=type(exc).__name__, message=describe_error(exc), retryable=True)


class SessionState(BaseModel):
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    owner: str
    phase: SessionPhase = SessionPhase.INITIALIZING
    stage: Stage = Stage.START
    transcript: list[Turn] = Field(default_factory=list)

    error: Optional[SessionError] = None
    pending_input: Optional[str] = None
    last_question: Optional[DialogueTurn] = None

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    report: Optional[FeedbackReport] = None
    record_id: Optional[str] = None
    degraded: bool = False


class InterviewSessionController:
    """
    Owns one session. Collaborators are injected:

    engine      - DialogueEngine-like, `next_question(request, setup)`
    reporter    - ReportGenerator-like, `generate(analysis, history, minutes)`
    store       - InterviewStore-like, `save_completed(...)`
    playback    - AudioPlaybackQueue, optional (text-only without it)
    transcriber - TranscriptionClient, optional (voice input)
    capture     - AudioCapture, optional (voice input)
    """

    def __init__(
        self,
        owner: str,
        job_details: JobDetails,
        engine,
        reporter,
        store,
        playback=None,
        transcriber=None,
        capture=None,
        setup: Optional[InterviewSetup] = None,
        record_id: Optional[str] = None,
        completion_delay: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.job_details = job_details
        self.engine = engine
        self.reporter = reporter
        self.store = store
        self.playback = playback
        self.transcriber = transcriber
        self.capture = capture
        self.setup = setup or InterviewSetup()
        self.completion_delay = config.app.completion_delay if completion_delay is None else completion_delay
        self._clock = clock

        self.state = SessionState(owner=owner, record_id=record_id)
        self._completion_task: Optional[asyncio.Task] = None
        self._completion_started = False

        logger.info(f"Session {self.state.session_id} created for owner {owner}")

    # --- observable state ---

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def transcript(self) -> list[Turn]:
        return list(self.state.transcript)

    @property
    def is_speaking(self) -> bool:
        return self.playback is not None and self.playback.is_speaking

    @property
    def accepts_input(self) -> bool:
        return self.state.phase == SessionPhase.AWAITING_CANDIDATE and not self.is_speaking

    def snapshot(self) -> dict:
        return self.state.model_dump(mode="json", by_alias=True)

    # --- transitions ---

    async def initialize(self) -> bool:
        """Ask the opening question. Safe to call again after ERRORED."""
        if self.state.phase not in (SessionPhase.INITIALIZING, SessionPhase.ERRORED):
            logger.warning(f"initialize() ignored in phase {self.state.phase.value}")
            return False

        self.state.phase = SessionPhase.INITIALIZING
        self.state.error = None
        if self.state.started_at is None:
            self.state.started_at = self._clock()

        request = DialogueRequest(
            job_analysis=self.job_details.analysis,
            conversation_history=[],
            interview_stage=self.state.stage,
        )
        try:
            question = await self.engine.next_question(request, self.setup)
        except Exception as e:
            self._record_error(e)
            self.state.phase = SessionPhase.ERRORED
            return False

        self._commit([self._interviewer_turn(question)], question)
        logger.info("Interview started")
        return True

    async def submit_text(self, text: str) -> bool:
        """
        Send one candidate answer. Returns False when the submission was
        rejected or the engine call failed; the transcript is untouched then.
        """
        text = (text or "").strip()
        if self.state.phase != SessionPhase.AWAITING_CANDIDATE:
            logger.warning(f"Submission rejected in phase {self.state.phase.value}")
            return False
        if not text:
            logger.warning("Empty submission rejected")
            return False
        if self.is_speaking:
            # kept so retry() can resend it once the interviewer is done
            self.state.pending_input = text
            self.state.error = SessionError(
                kind="InterviewerSpeaking",
                message="Please wait until the interviewer has finished, then send your answer again.",
                retryable=True,
            )
            logger.warning("Submission deferred while the interviewer is speaking")
            return False

        self.state.phase = SessionPhase.PROCESSING_TURN
        self.state.error = None
        self.state.pending_input = text

        answer = Turn(role=Role.CANDIDATE, text=text)
        request = DialogueRequest(
            job_analysis=self.job_details.analysis,
            candidate_response=text,
            conversation_history=[*self.state.transcript, answer],
            interview_stage=self.state.stage,
        )
        try:
            question = await self.engine.next_question(request, self.setup)
        except Exception as e:
            self._record_error(e)
            self.state.phase = SessionPhase.AWAITING_CANDIDATE
            return False

        self._commit([answer, self._interviewer_turn(question)], question)
        return True

    async def retry(self) -> bool:
        """Explicitly resend whatever failed last."""
        if self.state.phase == SessionPhase.ERRORED:
            return await self.initialize()
        if self.state.phase == SessionPhase.AWAITING_CANDIDATE and self.state.pending_input:
            return await self.submit_text(self.state.pending_input)
        logger.debug("Nothing to retry")
        return False

    def clear_error(self):
        self.state.error = None

    # --- voice input ---

    async def start_recording(self) -> bool:
        if self.capture is None:
            raise RuntimeError("Voice input is not configured for this session")
        if not self.accepts_input:
            logger.warning("Recording not allowed right now")
            return False
        try:
            await self.capture.start()
        except Exception as e:
            self._record_error(e)
            return False
        self.state.error = None
        return True

    async def stop_recording(self) -> bool:
        """
        Finish the recording, transcribe it and submit the text. An answer
        deferred because the interviewer is speaking stays in pending_input.
        """
        if self.capture is None or self.transcriber is None:
            raise RuntimeError("Voice input is not configured for this session")
        try:
            recording = await self.capture.stop()
            text = await self.transcriber.transcribe(recording)
        except Exception as e:
            self._record_error(e)
            return False
        return await self.submit_text(text)

    def interrupt_speech(self):
        if self.playback is not None:
            self.playback.interrupt()

    async def wait_completed(self):
        """Suspend until the completion step (report + storage) has finished."""
        if self._completion_task is not None:
            await self._completion_task

    async def close(self):
        if self._completion_task is not None and not self._completion_task.done():
            await self._completion_task
        if self.capture is not None:
            self.capture.close()
        if self.playback is not None:
            await self.playback.close()

    # --- internals ---

    def _interviewer_turn(self, question: DialogueTurn) -> Turn:
        return Turn(role=Role.INTERVIEWER, text=question.question, question_type=question.question_type)

    def _commit(self, turns: list[Turn], question: DialogueTurn):
        try:
            self._check_alternation(turns)
        except RuntimeError as e:
            self._record_error(e)
            self.state.phase = (
                SessionPhase.AWAITING_CANDIDATE if self.state.transcript else SessionPhase.ERRORED
            )
            raise
        self.state.transcript.extend(turns)
        self.state.pending_input = None
        self.state.last_question = question
        self._advance_stage(question.next_stage)

        if self.playback is not None:
            self.playback.enqueue(question.question)

        if question.interview_complete:
            self.state.phase = SessionPhase.COMPLETING
            self._completion_task = asyncio.create_task(self._complete())
        else:
            self.state.phase = SessionPhase.AWAITING_CANDIDATE

    def _check_alternation(self, turns: list[Turn]):
        previous = self.state.transcript[-1].role if self.state.transcript else Role.CANDIDATE
        for turn in turns:
            if turn.role == previous:
                raise RuntimeError(f"Two {turn.role.value} turns in a row")
            previous = turn.role

    def _advance_stage(self, next_stage: Optional[str]):
        if not next_stage:
            return
        stage = Stage.parse(next_stage)
        if stage is None:
            logger.warning(f"Unknown stage {next_stage!r} ignored")
            return
        if stage.order < self.state.stage.order:
            logger.warning(f"Backward stage change {self.state.stage.value} -> {stage.value} ignored")
            return
        if stage != self.state.stage:
            logger.info(f"Stage: {self.state.stage.value} -> {stage.value}")
            self.state.stage = stage

    def _record_error(self, error: BaseException):
        self.state.error = SessionError.from_exception(error)
        if isinstance(error, InterviewError):
            logger.warning(f"{error.kind}: {error}")
        else:
            logger.opt(exception=error).error(f"Unexpected error: {error}")

    def _duration_minutes(self) -> int:
        started = self.state.started_at or self._clock()
        return round((self._clock() - started).total_seconds() / 60)

    async def _complete(self):
        if self._completion_started:
            return
        self._completion_started = True

        # let the closing words play out
        await asyncio.sleep(self.completion_delay)

        duration = self._duration_minutes()
        report = None
        degraded = False
        try:
            report = await self.reporter.generate(self.job_details.analysis, self.transcript, duration)
        except Exception as e:
            self._record_error(e)
            degraded = True

        try:
            record = self.store.save_completed(
                owner=self.state.owner,
                job_details=self.job_details,
                messages=self.transcript,
                setup=self.setup,
                report=report,
                duration_minutes=duration,
                record_id=self.state.record_id,
                degraded=degraded,
            )
            self.state.record_id = record.id
        except Exception as e:
            self._record_error(e)
            degraded = True

        self.state.report = report
        self.state.degraded = degraded
        self.state.completed_at = self._clock()
        self.state.phase = SessionPhase.COMPLETED
        logger.info(f"Interview completed in {duration} min (degraded={degraded})")
