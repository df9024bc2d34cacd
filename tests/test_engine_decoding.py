import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from conftest import REPORT_DATA
from pitchperfect.clients.chatgpt_client import ChatGPTClient, extract_json
from pitchperfect.orchestrator.interview_engine import DialogueEngine
from pitchperfect.orchestrator.job_analyzer import JobAnalyzer
from pitchperfect.orchestrator.report_generator import ReportGenerator
from pitchperfect.orchestrator.schema import DialogueRequest, HiringRecommendation, Role, Stage, Turn
from pitchperfect.utils.error_handlers import (
    BadInput,
    IncompleteResult,
    RateLimited,
    ServiceUnavailable,
    UnknownTransportError,
)

QUESTION = {
    "question": "Walk me through a service you designed with FastAPI.",
    "questionType": "technical",
    "expectedAnswerPoints": ["async endpoints", "validation"],
    "followUpQuestions": ["How did you test it?"],
    "evaluationCriteria": ["depth"],
    "difficulty": 6,
    "timeAllocation": 4,
    "nextStage": "technical",
    "interviewComplete": False,
}

ANALYSIS = {
    "keySkills": ["Python", "SQL"],
    "requiredExperience": ["3 years"],
    "companyInfo": "Acme builds payment rails.",
    "roleResponsibilities": ["APIs"],
    "interviewFocus": ["design"],
    "difficulty": "senior",
}


class FakeChat:
    """Returns scripted raw model replies through the real JSON extraction."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def complete_json(self, system_prompt, user_prompt, model, temperature=0.3, max_tokens=None):
        self.calls.append({"system": system_prompt, "user": user_prompt, "model": model,
                           "temperature": temperature, "max_tokens": max_tokens})
        return extract_json(self.replies.pop(0))


# --- JSON extraction ---

def test_extract_json_ignores_surrounding_prose():
    reply = f"Sure! Here is the next question:\n```json\n{json.dumps(QUESTION)}\n```\nGood luck."
    assert extract_json(reply)["question"] == QUESTION["question"]


@pytest.mark.parametrize("reply", [None, "", "no json here", "{not valid json}", "[1, 2]"])
def test_extract_json_failures_are_incomplete(reply):
    with pytest.raises(IncompleteResult):
        extract_json(reply)


# --- dialogue engine ---

async def test_engine_decodes_question(analysis):
    chat = FakeChat("Here you go: " + json.dumps(QUESTION))
    engine = DialogueEngine(chat=chat)
    history = [
        Turn(role=Role.INTERVIEWER, text="Tell me about yourself."),
        Turn(role=Role.CANDIDATE, text="I build backends."),
    ]

    turn = await engine.next_question(DialogueRequest(
        job_analysis=analysis, conversation_history=history, interview_stage=Stage.START,
    ))

    assert turn.question_type == "technical"
    assert turn.difficulty == 6
    assert turn.next_stage == "technical"
    assert not turn.interview_complete
    assert chat.calls[0]["temperature"] == 0.4
    assert chat.calls[0]["max_tokens"] == 1500
    assert "I build backends." in chat.calls[0]["user"]


@pytest.mark.parametrize("missing", ["question", "questionType", "difficulty", "evaluationCriteria"])
async def test_engine_rejects_missing_fields(analysis, missing):
    data = {k: v for k, v in QUESTION.items() if k != missing}
    engine = DialogueEngine(chat=FakeChat(json.dumps(data)))

    with pytest.raises(IncompleteResult):
        await engine.next_question(DialogueRequest(job_analysis=analysis))


async def test_engine_rejects_out_of_range_difficulty(analysis):
    engine = DialogueEngine(chat=FakeChat(json.dumps({**QUESTION, "difficulty": 11})))
    with pytest.raises(IncompleteResult):
        await engine.next_question(DialogueRequest(job_analysis=analysis))


async def test_engine_requires_analysis_before_calling():
    chat = FakeChat()
    engine = DialogueEngine(chat=chat)

    with pytest.raises(BadInput):
        await engine.next_question(DialogueRequest(candidate_response="hello"))
    assert chat.calls == []


def test_request_accepts_wire_names(analysis):
    request = DialogueRequest.model_validate({
        "jobAnalysis": analysis.model_dump(by_alias=True),
        "candidateResponse": "hi",
        "conversationHistory": [{"role": "interviewer", "content": "Hello"}],
        "interviewStage": "behavioral",
    })
    assert request.interview_stage == Stage.BEHAVIORAL
    assert request.conversation_history[0].text == "Hello"


# --- job analyzer ---

async def test_analyzer_decodes_analysis():
    chat = FakeChat(json.dumps(ANALYSIS))
    analyzer = JobAnalyzer(chat=chat)

    analysis = await analyzer.analyze("We are hiring a senior backend engineer " * 3, "Acme", "Backend Engineer")

    assert analysis.key_skills == ["Python", "SQL"]
    assert analysis.difficulty == "senior"
    assert "Acme" in chat.calls[0]["user"]


@pytest.mark.parametrize("description", ["", "   ", "Too short to analyze."])
async def test_analyzer_rejects_short_description(description):
    chat = FakeChat()
    with pytest.raises(BadInput):
        await JobAnalyzer(chat=chat).analyze(description)
    assert chat.calls == []


async def test_analyzer_without_skills_is_incomplete():
    chat = FakeChat(json.dumps({**ANALYSIS, "keySkills": []}))
    with pytest.raises(IncompleteResult):
        await JobAnalyzer(chat=chat).analyze("x" * 100)


async def test_analyzer_rejects_unknown_level():
    chat = FakeChat(json.dumps({**ANALYSIS, "difficulty": "wizard"}))
    with pytest.raises(IncompleteResult):
        await JobAnalyzer(chat=chat).analyze("x" * 100)


# --- report generator ---

async def test_report_is_decoded_and_normalized(analysis):
    chat = FakeChat(json.dumps({**REPORT_DATA, "hiringRecommendation": "Strong_Hire"}))
    history = [Turn(role=Role.INTERVIEWER, text="Q"), Turn(role=Role.CANDIDATE, text="A")]

    report = await ReportGenerator(chat=chat).generate(analysis, history, 25)

    assert report.overall_score == 7.5
    assert report.hiring_recommendation == HiringRecommendation.STRONG_HIRE
    assert chat.calls[0]["temperature"] == 0.2
    assert "25" in chat.calls[0]["user"]


@pytest.mark.parametrize("missing", ["overallScore", "technicalSkillsAssessment", "hiringRecommendation"])
async def test_report_missing_fields_are_not_filled_in(analysis, missing):
    data = {k: v for k, v in REPORT_DATA.items() if k != missing}
    history = [Turn(role=Role.INTERVIEWER, text="Q")]

    with pytest.raises(IncompleteResult):
        await ReportGenerator(chat=FakeChat(json.dumps(data))).generate(analysis, history, 10)


async def test_report_requires_history(analysis):
    chat = FakeChat()
    with pytest.raises(BadInput):
        await ReportGenerator(chat=chat).generate(analysis, [], 10)
    assert chat.calls == []


# --- chat client error mapping ---

class FakeCompletions:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def fake_openai(result):
    completions = FakeCompletions(result)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def status_error(cls, status):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return cls("upstream error", response=httpx.Response(status, request=request), body=None)


async def test_chat_client_returns_content():
    reply = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content='{"ok": true}'))],
        usage=SimpleNamespace(total_tokens=42),
    )
    client, _ = fake_openai(reply)
    chat = ChatGPTClient(client=client)

    assert await chat.complete_json("sys", "user", model="gpt-4") == {"ok": True}
    assert chat.get_statistics() == {"total_requests": 1, "total_tokens_used": 42}


@pytest.mark.parametrize("cls,status,expected", [
    (openai.RateLimitError, 429, RateLimited),
    (openai.InternalServerError, 503, ServiceUnavailable),
])
async def test_chat_client_maps_status_errors(cls, status, expected):
    client, completions = fake_openai(status_error(cls, status))
    chat = ChatGPTClient(client=client)

    with pytest.raises(expected):
        await chat.complete("sys", "user", model="gpt-4")
    assert completions.calls == 1


async def test_chat_client_connection_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client, _ = fake_openai(openai.APIConnectionError(request=request))
    chat = ChatGPTClient(client=client)

    with pytest.raises(UnknownTransportError):
        await chat.complete("sys", "user", model="gpt-4")
