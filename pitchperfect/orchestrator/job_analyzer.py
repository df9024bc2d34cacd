from typing import Optional

from loguru import logger
from pydantic import ValidationError

from config import config
from pitchperfect.clients.chatgpt_client import ChatGPTClient
from pitchperfect.orchestrator.prompts import ANALYZER_SYSTEM_PROMPT, analysis_prompt
from pitchperfect.orchestrator.schema import JobAnalysis
from pitchperfect.utils.error_handlers import BadInput, IncompleteResult


class JobAnalyzer:
    """Turns a pasted job description into a structured JobAnalysis."""

    def __init__(self, chat: Optional[ChatGPTClient] = None):
        self.chat = chat or ChatGPTClient()
        self.model = config.api.analysis_model
        self.min_length = config.interview.min_job_description_length

    async def analyze(
        self,
        description: str,
        company_name: Optional[str] = None,
        job_title: Optional[str] = None,
    ) -> JobAnalysis:
        description = (description or "").strip()
        if not description:
            raise BadInput("Job description is required")
        if len(description) < self.min_length:
            raise BadInput(
                f"Job description must be at least {self.min_length} characters long",
                recovery_suggestion="Please provide a more detailed job description.",
            )

        logger.info(f"Analyzing job post ({len(description)} characters)")
        data = await self.chat.complete_json(
            ANALYZER_SYSTEM_PROMPT,
            analysis_prompt(description, company_name, job_title),
            model=self.model,
            temperature=0.3,
        )

        try:
            analysis = JobAnalysis.model_validate(data)
        except ValidationError as e:
            raise IncompleteResult(f"Invalid job analysis: {e}") from e

        if not analysis.key_skills:
            raise IncompleteResult(
                "Analysis incomplete: no key skills found",
                recovery_suggestion="Please provide a more detailed job description.",
            )

        logger.info(f"Job analysis done: {len(analysis.key_skills)} key skills, level {analysis.difficulty}")
        return analysis
