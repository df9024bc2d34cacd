"""Prompt texts for the dialogue engine, job analyzer and report generator."""

from typing import Iterable, Optional

from pitchperfect.orchestrator.schema import InterviewSetup, JobAnalysis, Stage, Turn


INTERVIEWER_SYSTEM_PROMPT = """You are an experienced hiring manager conducting a structured job interview.

Ask exactly one focused question at a time, tailored to the position and the candidate's level.
Move through the stages in order: start (welcome and role overview), technical, behavioral,
situational, closing (candidate questions and next steps). Probe deeper when an answer is shallow,
acknowledge good answers and keep a professional, conversational tone.

Always reply with a single JSON object:
{
  "question": "the next question",
  "questionType": "opening|technical|behavioral|situational|closing",
  "expectedAnswerPoints": ["..."],
  "followUpQuestions": ["..."],
  "evaluationCriteria": ["..."],
  "difficulty": 1-10,
  "timeAllocation": minutes,
  "nextStage": "stage to move to, omit to stay",
  "interviewComplete": true when the interview should end
}"""


ANALYZER_SYSTEM_PROMPT = """You are an HR analyst and technical recruiter. Analyze the job posting and
extract what a candidate needs to prepare for the interview. If the posting is vague, infer from the
title and industry. Arrays should contain 3-5 relevant items.

Reply with a single JSON object:
{
  "keySkills": ["..."],
  "requiredExperience": ["..."],
  "companyInfo": "what can be inferred about the company",
  "roleResponsibilities": ["..."],
  "interviewFocus": ["..."],
  "difficulty": "entry|mid|senior|executive",
  "estimatedSalaryRange": "if available",
  "workArrangement": "remote|hybrid|on-site|flexible"
}"""


REPORT_SYSTEM_PROMPT = """You are a senior hiring manager writing interview feedback. Score every area
on a 0-10 scale (9-10 exceptional, 7-8 strong, 5-6 meets expectations, 3-4 below, 1-2 unsuitable).
Be specific, cite the transcript, and give actionable suggestions.

Reply with a single JSON object:
{
  "overallScore": number,
  "overallAssessment": "string",
  "strengths": ["..."],
  "areasForImprovement": ["..."],
  "technicalSkillsAssessment": {"score": number, "details": "string",
    "specificSkills": [{"skill": "string", "rating": number, "feedback": "string"}]},
  "behavioralSkillsAssessment": {"score": number, "details": "string",
    "traits": [{"trait": "string", "rating": number, "feedback": "string"}]},
  "communicationSkills": {"score": number, "clarity": number, "structure": number,
    "engagement": number, "feedback": "string"},
  "problemSolvingApproach": {"score": number, "methodology": "string", "creativity": number,
    "analyticalThinking": number, "feedback": "string"},
  "culturalFit": {"score": number, "alignment": "string", "feedback": "string"},
  "recommendedNextSteps": ["..."],
  "hiringRecommendation": "strong_hire|hire|no_hire|strong_no_hire",
  "confidenceLevel": number,
  "detailedFeedback": [{"question": "string", "candidateResponse": "string",
    "evaluation": "string", "score": number, "suggestions": ["..."]}]
}"""


def _join(items: Iterable[str], fallback: str) -> str:
    items = [item for item in items if item]
    return ", ".join(items) if items else fallback


def position_details(analysis: JobAnalysis) -> str:
    return (
        f"Key Skills Required: {_join(analysis.key_skills, 'General skills assessment')}\n"
        f"Required Experience: {_join(analysis.required_experience, 'To be determined')}\n"
        f"Company Info: {analysis.company_info or 'Not provided'}\n"
        f"Role Responsibilities: {_join(analysis.role_responsibilities, 'Standard responsibilities')}\n"
        f"Interview Focus Areas: {_join(analysis.interview_focus, 'Comprehensive assessment')}\n"
        f"Position Level: {analysis.difficulty}"
    )


def format_history(history: Iterable[Turn], with_time: bool = False) -> str:
    lines = []
    for turn in history:
        prefix = f"[{turn.timestamp.strftime('%H:%M:%S')}] " if with_time else ""
        lines.append(f"{prefix}{turn.role.value.upper()}: {turn.text}")
    return "\n".join(lines)


def interview_prompt(
    analysis: JobAnalysis,
    stage: Stage,
    history: list[Turn],
    candidate_response: Optional[str] = None,
    setup: Optional[InterviewSetup] = None,
) -> str:
    parts = ["POSITION DETAILS:", position_details(analysis), "", f"CURRENT INTERVIEW STAGE: {stage.value}"]

    if setup is not None:
        parts.append(
            f"INTERVIEW SETUP: persona={setup.interviewer_persona}, type={setup.interview_type}, "
            f"duration={setup.duration} minutes, focus={_join(setup.focus_areas, 'none')}"
        )

    if history:
        parts += ["", "CONVERSATION HISTORY:", format_history(history)]
    if candidate_response:
        parts += ["", f"CANDIDATE'S LATEST RESPONSE: {candidate_response}"]

    parts += ["", "Provide the next interview question as a JSON object."]
    return "\n".join(parts)


def analysis_prompt(description: str, company_name: Optional[str], job_title: Optional[str]) -> str:
    return (
        "Please analyze this job posting:\n\n"
        f"Job Title: {job_title or 'Not specified'}\n"
        f"Company: {company_name or 'Not specified'}\n\n"
        f"Job Description:\n{description}"
    )


def report_prompt(analysis: JobAnalysis, history: list[Turn], duration_minutes: int) -> str:
    return (
        "POSITION REQUIREMENTS:\n"
        f"{position_details(analysis)}\n\n"
        "INTERVIEW DETAILS:\n"
        f"Duration: {duration_minutes} minutes\n"
        f"Total Exchanges: {len(history)}\n\n"
        "COMPLETE INTERVIEW TRANSCRIPT:\n"
        f"{format_history(history, with_time=True)}\n\n"
        "Provide the feedback report as a JSON object."
    )
