"""
OpenAI ChatGPT client - chat completions returning JSON documents

Used by the dialogue engine, the job analyzer and the report generator.
The model is asked for JSON but may still wrap it in prose, so the first
{...} block of the reply is extracted and parsed strictly.
"""

import json
import re
from typing import Optional

import openai
from openai import AsyncOpenAI
from loguru import logger

from config import config
from pitchperfect.utils.error_handlers import (
    IncompleteResult,
    UnknownTransportError,
    error_for_status,
)

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def extract_json(content: Optional[str]) -> dict:
    """Parse the JSON object embedded in a model reply."""
    if not content:
        raise IncompleteResult("Empty response from the model")
    match = _JSON_BLOCK.search(content)
    if not match:
        raise IncompleteResult("No JSON object in the model response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise IncompleteResult(f"Malformed JSON in the model response: {e}") from e
    if not isinstance(data, dict):
        raise IncompleteResult("Model response is not a JSON object")
    return data


class ChatGPTClient:
    """AsyncOpenAI wrapper; one request per call, failures mapped to the taxonomy."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.api_key = config.api.openai_api_key

        # The SDK retries on its own by default; retries are the caller's decision here
        self.client = client or AsyncOpenAI(
            api_key=self.api_key,
            base_url=config.api.openai_base_url,
            timeout=config.api.request_timeout,
            max_retries=0,
        )

        self.total_requests = 0
        self.total_tokens_used = 0

        logger.info("ChatGPT client ready")

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> str:
        logger.debug(f"Chat completion request. Model: {model}")
        kwargs = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                **kwargs,
            )
        except openai.APIStatusError as e:
            error = error_for_status(e.status_code, "OpenAI", str(e.message))
            logger.error(f"OpenAI API error: {error}")
            raise error from e
        except openai.APIError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise UnknownTransportError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            raise IncompleteResult("No choices in the model response")

        self.total_requests += 1
        if getattr(response, "usage", None):
            self.total_tokens_used += response.usage.total_tokens

        content = response.choices[0].message.content or ""
        logger.info(f"Chat completion received ({len(content)} characters)")
        return content

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> dict:
        content = await self.complete(system_prompt, user_prompt, model, temperature, max_tokens)
        return extract_json(content)

    def get_statistics(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "total_tokens_used": self.total_tokens_used,
        }
