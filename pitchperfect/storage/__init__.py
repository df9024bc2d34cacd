from .interview_store import (
    InterviewStore,
    InterviewRecord,
    JobDetails,
    TranscriptData,
    RecordNotFound,
)

__all__ = [
    'InterviewStore',
    'InterviewRecord',
    'JobDetails',
    'TranscriptData',
    'RecordNotFound',
]
