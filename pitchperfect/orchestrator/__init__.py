from .schema import (
    Stage,
    Role,
    Turn,
    JobPostInput,
    JobAnalysis,
    JobDetails,
    InterviewSetup,
    DialogueRequest,
    DialogueTurn,
    FeedbackReport,
    HiringRecommendation,
    TranscriptData,
)
from .interview_engine import DialogueEngine
from .job_analyzer import JobAnalyzer
from .report_generator import ReportGenerator
from .session_controller import (
    InterviewSessionController,
    SessionError,
    SessionPhase,
    SessionState,
)

__all__ = [
    'Stage',
    'Role',
    'Turn',
    'JobPostInput',
    'JobAnalysis',
    'JobDetails',
    'InterviewSetup',
    'DialogueRequest',
    'DialogueTurn',
    'FeedbackReport',
    'HiringRecommendation',
    'TranscriptData',
    'DialogueEngine',
    'JobAnalyzer',
    'ReportGenerator',
    'InterviewSessionController',
    'SessionError',
    'SessionPhase',
    'SessionState',
]
