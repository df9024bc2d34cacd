from typing import Optional

from loguru import logger
from pydantic import ValidationError

from config import config
from pitchperfect.clients.chatgpt_client import ChatGPTClient
from pitchperfect.orchestrator.prompts import REPORT_SYSTEM_PROMPT, report_prompt
from pitchperfect.orchestrator.schema import FeedbackReport, JobAnalysis, Turn
from pitchperfect.utils.error_handlers import BadInput, IncompleteResult


class ReportGenerator:
    """Transcript -> scored FeedbackReport. Missing fields are never filled in."""

    def __init__(self, chat: Optional[ChatGPTClient] = None):
        self.chat = chat or ChatGPTClient()
        self.model = config.api.report_model

    async def generate(
        self,
        job_analysis: Optional[JobAnalysis],
        history: list[Turn],
        duration_minutes: int,
    ) -> FeedbackReport:
        if job_analysis is None or not history:
            raise BadInput("Job analysis and conversation history are required")

        logger.info(f"Generating feedback report ({len(history)} turns, {duration_minutes} min)")
        data = await self.chat.complete_json(
            REPORT_SYSTEM_PROMPT,
            report_prompt(job_analysis, history, duration_minutes),
            model=self.model,
            temperature=0.2,
        )

        try:
            report = FeedbackReport.model_validate(data)
        except ValidationError as e:
            logger.error(f"Incomplete feedback report: {e.error_count()} error(s)")
            raise IncompleteResult(f"Incomplete feedback report: {e}") from e

        logger.info(
            f"Report ready. Score: {report.overall_score}, recommendation: {report.hiring_recommendation.value}"
        )
        return report
