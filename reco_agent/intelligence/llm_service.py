"""
Prompt-Completion Service clients.
Sends a natural-language prompt to an agent or model and returns its text answer.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.errors import ServiceError
from ..data.http_transport import EndpointResolver, join_url, send

logger = logging.getLogger(__name__)


def _non_blank(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def extract_answer_text(payload: Any) -> Optional[str]:
    """
    Pull the answer text out of a LangGraph run result.

    Tries values.final_text, then message, then the last "ai" entry of messages.
    """
    if not isinstance(payload, dict):
        return None

    values = payload.get("values")
    if isinstance(values, dict):
        final = _non_blank(values.get("final_text"))
        if final:
            return final

    message = _non_blank(payload.get("message"))
    if message:
        return message

    messages = payload.get("messages")
    if isinstance(messages, list):
        ai_messages = [
            m for m in messages
            if isinstance(m, dict) and str(m.get("role", "")).lower() == "ai"
        ]
        if ai_messages:
            return _non_blank(ai_messages[-1].get("content"))
    return None


class LangGraphCompletionClient:
    """Asks questions to a LangGraph assistant through POST /runs/wait."""

    def __init__(
        self,
        candidates: List[str],
        assistant_id: str = "my_agent",
        dataset_uuid: str = "default",
        ping_timeout: float = 12.0,
        ask_timeout: float = 600.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the LangGraph client.

        Args:
            candidates: Base URLs to try, in order
            assistant_id: LangGraph assistant to run
            dataset_uuid: Dataset identifier passed with every question
            ping_timeout: Timeout for the connectivity probe
            ask_timeout: Timeout for a full agent run
            client: httpx client to use (one is created if omitted)
        """
        self.assistant_id = assistant_id
        self.dataset_uuid = dataset_uuid
        self.ping_timeout = ping_timeout
        self.ask_timeout = ask_timeout
        self.client = client or httpx.Client()
        self._endpoint = EndpointResolver("LangGraph server", candidates)

    def _body(self, question: str) -> Dict[str, Any]:
        return {
            "assistant_id": self.assistant_id,
            "input": {"question": question, "uuid": self.dataset_uuid},
        }

    @property
    def candidates(self) -> List[str]:
        return self._endpoint.candidates

    def connect(self) -> str:
        """Resolve the first reachable LangGraph server and return its base URL."""
        return self._endpoint.resolve(self._ping)

    def _ping(self, base: str) -> bool:
        # Any status below 500 means the server is up (400/422 are fine)
        url = join_url(base, "runs/wait")
        try:
            response = send(
                self.client, "POST", url,
                timeout=self.ping_timeout,
                body=self._body("ping"),
                tolerate_all_status=True,
            )
        except ServiceError as e:
            logger.debug(f"Ping failed for {base}: {e}")
            return False
        return response.status_code < 500

    def ask(self, prompt: str) -> str:
        """
        Ask the assistant a question.

        Args:
            prompt: Natural-language prompt

        Returns:
            The assistant's answer text

        Raises:
            ServiceError: On transport failure, error status or empty answer
        """
        base = self.connect()
        url = join_url(base, "runs/wait")
        response = send(self.client, "POST", url, timeout=self.ask_timeout, body=self._body(prompt))

        try:
            answer = extract_answer_text(response.json())
        except ValueError:
            answer = None
        if answer:
            return answer

        raw = response.text
        if not raw:
            raise ServiceError("Empty answer from agent")
        return raw

    def close(self):
        self.client.close()


class MistralLLMService:
    """
    Prompt-Completion Service backed by Mistral AI.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "mistral-large-latest",
        temperature: float = 0.1,
        max_tokens: int = 2000
    ):
        """
        Initialize Mistral AI service.

        Args:
            api_key: Mistral API key
            model: Model to use (mistral-large-latest, mistral-small-latest, etc.)
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        try:
            from mistralai import Mistral
            self.client = Mistral(api_key=api_key)
            logger.info(f"Initialized Mistral AI with model: {model}")
        except ImportError:
            logger.error("mistralai package not installed. Install with: pip install mistralai")
            raise

    def connect(self) -> str:
        return f"mistral:{self.model}"

    def ask(self, prompt: str) -> str:
        """Send the prompt as a single user message and return the reply text."""
        messages = [
            {
                "role": "system",
                "content": "You are an expert PostgreSQL query generator for a formation recommendation database."
            },
            {
                "role": "user",
                "content": prompt
            }
        ]

        try:
            response = self.client.chat.complete(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            logger.error(f"Mistral AI request failed: {e}")
            raise ServiceError(f"Mistral AI request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not isinstance(content, str) or not content.strip():
            raise ServiceError("Empty answer from agent")
        return content.strip()


def create_llm_service(
    api_key: Optional[str],
    model: str = "mistral-large-latest",
) -> Optional[MistralLLMService]:
    """
    Factory function to create the Mistral completion service.

    Returns:
        LLM service instance or None if no API key is configured
    """
    if not api_key:
        logger.info("No Mistral API key provided. Mistral backend disabled.")
        return None
    return MistralLLMService(api_key=api_key, model=model)
