from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Stage(str, Enum):
    START = "start"
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    SITUATIONAL = "situational"
    CLOSING = "closing"

    @property
    def order(self) -> int:
        return list(Stage).index(self)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Stage"]:
        """Stage for a loosely formatted name, None when unknown."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Role(str, Enum):
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"


class Turn(CamelModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    text: str = Field(..., alias="content")
    timestamp: datetime = Field(default_factory=datetime.now)
    question_type: Optional[str] = None


# --- Job analysis ---

class JobPostInput(CamelModel):
    title: str = ""
    company: str = ""
    description: str
    url: Optional[str] = None
    cv_file: Optional[str] = None
    cover_letter: Optional[str] = None


class JobAnalysis(CamelModel):
    key_skills: list[str] = Field(default_factory=list)
    required_experience: list[str] = Field(default_factory=list)
    company_info: str = ""
    role_responsibilities: list[str] = Field(default_factory=list)
    interview_focus: list[str] = Field(default_factory=list)
    difficulty: Literal["entry", "mid", "senior", "executive"] = "mid"
    estimated_salary_range: Optional[str] = None
    work_arrangement: Optional[str] = None


class InterviewSetup(CamelModel):
    interviewer_persona: str = "professional"
    interview_type: str = "comprehensive"
    difficulty: str = "mid"
    focus_areas: list[str] = Field(default_factory=list)
    duration: int = 30


# --- Dialogue engine ---

class DialogueRequest(CamelModel):
    job_analysis: Optional[JobAnalysis] = None
    candidate_response: Optional[str] = None
    conversation_history: list[Turn] = Field(default_factory=list)
    interview_stage: Stage = Stage.START


class DialogueTurn(CamelModel):
    question: str = Field(..., min_length=1)
    question_type: str
    expected_answer_points: list[str]
    follow_up_questions: list[str] = Field(default_factory=list)
    evaluation_criteria: list[str]
    difficulty: int = Field(..., ge=1, le=10)
    time_allocation: float = Field(..., ge=0, description="Minutes")
    next_stage: Optional[str] = None
    interview_complete: bool = False


# --- Feedback report ---

class SkillRating(CamelModel):
    skill: str
    rating: float = Field(..., ge=0, le=10)
    feedback: str = ""


class TraitRating(CamelModel):
    trait: str
    rating: float = Field(..., ge=0, le=10)
    feedback: str = ""


class TechnicalAssessment(CamelModel):
    score: float = Field(..., ge=0, le=10)
    details: str = ""
    specific_skills: list[SkillRating] = Field(default_factory=list)


class BehavioralAssessment(CamelModel):
    score: float = Field(..., ge=0, le=10)
    details: str = ""
    traits: list[TraitRating] = Field(default_factory=list)


class CommunicationAssessment(CamelModel):
    score: float = Field(..., ge=0, le=10)
    clarity: Optional[float] = Field(None, ge=0, le=10)
    structure: Optional[float] = Field(None, ge=0, le=10)
    engagement: Optional[float] = Field(None, ge=0, le=10)
    feedback: str = ""


class ProblemSolvingAssessment(CamelModel):
    score: float = Field(..., ge=0, le=10)
    methodology: str = ""
    creativity: Optional[float] = Field(None, ge=0, le=10)
    analytical_thinking: Optional[float] = Field(None, ge=0, le=10)
    feedback: str = ""


class CulturalFitAssessment(CamelModel):
    score: float = Field(..., ge=0, le=10)
    alignment: str = ""
    feedback: str = ""


class QuestionFeedback(CamelModel):
    question: str
    candidate_response: str = ""
    evaluation: str = ""
    score: float = Field(..., ge=0, le=10)
    suggestions: list[str] = Field(default_factory=list)


class HiringRecommendation(str, Enum):
    STRONG_HIRE = "strong_hire"
    HIRE = "hire"
    NO_HIRE = "no_hire"
    STRONG_NO_HIRE = "strong_no_hire"


class FeedbackReport(CamelModel):
    overall_score: float = Field(..., ge=0, le=10)
    overall_assessment: str = Field(..., min_length=1)
    strengths: list[str]
    areas_for_improvement: list[str]
    technical_skills_assessment: TechnicalAssessment
    behavioral_skills_assessment: BehavioralAssessment
    communication_skills: CommunicationAssessment
    problem_solving_approach: ProblemSolvingAssessment
    cultural_fit: CulturalFitAssessment
    recommended_next_steps: list[str] = Field(default_factory=list)
    hiring_recommendation: HiringRecommendation
    confidence_level: Optional[float] = None
    detailed_feedback: list[QuestionFeedback] = Field(default_factory=list)

    @field_validator("overall_score")
    @classmethod
    def one_decimal(cls, v: float) -> float:
        return round(v, 1)

    @field_validator("hiring_recommendation", mode="before")
    @classmethod
    def normalize_recommendation(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


# --- Persisted shapes ---

class JobDetails(CamelModel):
    raw_input: JobPostInput
    analysis: JobAnalysis


class TranscriptData(CamelModel):
    messages: list[Turn] = Field(default_factory=list)
    config: Optional[InterviewSetup] = None
