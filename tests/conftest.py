import os

# before config is imported anywhere
os.environ.setdefault("APP_LOG_TO_FILE", "false")
os.environ.setdefault("APP_LOG_LEVEL", "WARNING")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("ELEVEN_LABS", "test-elevenlabs-key")

import pytest

from pitchperfect.orchestrator.schema import (
    DialogueTurn,
    FeedbackReport,
    JobAnalysis,
    JobDetails,
    JobPostInput,
)
from pitchperfect.storage.interview_store import InterviewStore


# --- HTTP ---

class FakeResponse:
    def __init__(self, status=200, json_data=None, text="", body=b""):
        self.status = status
        self._json = json_data
        self._text = text
        self._body = body

    async def json(self, content_type=None):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json

    async def text(self):
        return self._text

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; returns queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        self.closed = True


# --- audio devices ---

class FakeStream:
    def __init__(self, chunk=b"\x01\x00" * 1024, fail_with=None):
        self.chunk = chunk
        self.fail_with = fail_with
        self.closed = False
        self.stopped = False
        self.written = []

    def read(self, n, exception_on_overflow=False):
        if self.fail_with:
            raise self.fail_with
        return self.chunk

    def write(self, frame):
        self.written.append(frame)

    def is_active(self):
        return not self.stopped

    def stop_stream(self):
        self.stopped = True

    def close(self):
        self.closed = True


class FakeAudioInterface:
    def __init__(self, stream=None, host_apis=1, has_input=True, open_error=None):
        self.stream = stream or FakeStream()
        self.host_apis = host_apis
        self.has_input = has_input
        self.open_error = open_error
        self.terminated = False
        self.opened = 0

    def get_host_api_count(self):
        return self.host_apis

    def get_default_input_device_info(self):
        if not self.has_input:
            raise OSError("No Default Input Device Available")
        return {"index": 0, "name": "Fake Mic"}

    def get_format_from_width(self, width):
        return 8

    def open(self, **kwargs):
        if self.open_error:
            raise self.open_error
        self.opened += 1
        return self.stream

    def get_device_count(self):
        return 1 if self.has_input else 0

    def get_device_info_by_index(self, i):
        return {"name": "Fake Mic", "maxInputChannels": 1}

    def terminate(self):
        self.terminated = True


class StepClock:
    """Monotonic clock that advances by `step` seconds on every read."""

    def __init__(self, step=0.0, start=0.0):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


# --- collaborators ---

class FakeEngine:
    """Scripted dialogue engine: each call pops a DialogueTurn or raises an exception."""

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    async def next_question(self, request, setup=None):
        self.requests.append(request)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeReporter:
    def __init__(self, report=None, error=None):
        self.report = report
        self.error = error
        self.calls = []

    async def generate(self, analysis, history, duration_minutes):
        self.calls.append((analysis, list(history), duration_minutes))
        if self.error:
            raise self.error
        return self.report


class FakePlayback:
    def __init__(self):
        self.is_speaking = False
        self.enqueued = []
        self.interrupted = False

    def enqueue(self, text):
        self.enqueued.append(text)

    def interrupt(self):
        self.interrupted = True

    async def await_playback_end(self):
        return None

    async def close(self):
        return None


def make_turn(question="Tell me about yourself.", next_stage=None, complete=False, question_type="opening"):
    return DialogueTurn(
        question=question,
        question_type=question_type,
        expected_answer_points=["background"],
        evaluation_criteria=["clarity"],
        difficulty=3,
        time_allocation=2,
        next_stage=next_stage,
        interview_complete=complete,
    )


REPORT_DATA = {
    "overallScore": 7.46,
    "overallAssessment": "Solid candidate with clear communication.",
    "strengths": ["Clear answers"],
    "areasForImprovement": ["More concrete examples"],
    "technicalSkillsAssessment": {"score": 7, "details": "Good", "specificSkills": []},
    "behavioralSkillsAssessment": {"score": 8, "details": "Good", "traits": []},
    "communicationSkills": {"score": 8, "clarity": 8, "structure": 7, "engagement": 8, "feedback": "Fine"},
    "problemSolvingApproach": {"score": 7, "methodology": "Structured", "creativity": 6,
                               "analyticalThinking": 7, "feedback": "Fine"},
    "culturalFit": {"score": 7, "alignment": "Good", "feedback": "Fine"},
    "recommendedNextSteps": ["Technical round"],
    "hiringRecommendation": "hire",
    "confidenceLevel": 8,
    "detailedFeedback": [],
}


@pytest.fixture
def analysis():
    return JobAnalysis(
        key_skills=["Python", "FastAPI", "PostgreSQL"],
        required_experience=["3+ years backend"],
        company_info="Fintech startup",
        role_responsibilities=["Build APIs"],
        interview_focus=["System design"],
        difficulty="mid",
    )


@pytest.fixture
def job_details(analysis):
    return JobDetails(
        raw_input=JobPostInput(title="Backend Engineer", company="Acme", description="x" * 80),
        analysis=analysis,
    )


@pytest.fixture
def report():
    return FeedbackReport.model_validate(REPORT_DATA)


@pytest.fixture
def store(tmp_path):
    return InterviewStore(tmp_path / "interviews")
