from typing import Optional

from loguru import logger
from pydantic import ValidationError

from config import config
from pitchperfect.clients.chatgpt_client import ChatGPTClient
from pitchperfect.orchestrator.prompts import INTERVIEWER_SYSTEM_PROMPT, interview_prompt
from pitchperfect.orchestrator.schema import DialogueRequest, DialogueTurn, InterviewSetup, Role
from pitchperfect.utils.error_handlers import BadInput, IncompleteResult


class DialogueEngine:
    """Next interviewer question from job analysis, history and stage."""

    def __init__(self, chat: Optional[ChatGPTClient] = None):
        self.chat = chat or ChatGPTClient()
        self.model = config.api.interview_model
        self.temperature = 0.4
        self.max_tokens = 1500
        self.total_questions = 0

    async def next_question(
        self,
        request: DialogueRequest,
        setup: Optional[InterviewSetup] = None,
    ) -> DialogueTurn:
        if request.job_analysis is None:
            raise BadInput("Job analysis is required")

        candidate_response = request.candidate_response
        history = request.conversation_history
        if candidate_response is None and history and history[-1].role == Role.CANDIDATE:
            candidate_response = history[-1].text

        prompt = interview_prompt(
            request.job_analysis,
            request.interview_stage,
            history,
            candidate_response,
            setup,
        )
        data = await self.chat.complete_json(
            INTERVIEWER_SYSTEM_PROMPT,
            prompt,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        try:
            turn = DialogueTurn.model_validate(data)
        except ValidationError as e:
            logger.error(f"Dialogue engine returned an invalid question: {e.error_count()} error(s)")
            raise IncompleteResult(f"Invalid interview question: {e}") from e

        self.total_questions += 1
        logger.info(
            f"Question {self.total_questions} ({turn.question_type}, stage {request.interview_stage.value})"
        )
        return turn
