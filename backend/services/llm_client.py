"""LLM Client for Groq chat completions."""
import time
from typing import List, Optional, Dict, Any
from groq import Groq, NOT_GIVEN
from groq import (
    RateLimitError, AuthenticationError, APIError, APITimeoutError, APIConnectionError
)
import logging

from models.conversation import Message
from services.errors import ChatbotError, UpstreamUnavailable, UpstreamError
from config import GROQ_API_KEY, LLM_MODEL

logger = logging.getLogger(__name__)


class LLMClient:
    """Client for interfacing with Groq API for chat completion."""

    def __init__(self, api_key: Optional[str] = None, model: str = LLM_MODEL):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Chat model name
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = Groq(api_key=self.api_key)
        logger.info(f"LLMClient initialized successfully (model: {model})")

    def complete(
        self,
        messages: List[Message],
        timeout: Optional[float] = None,
        max_tokens: int = 500
    ) -> str:
        """
        Send the conversation to the model and return its reply.

        Args:
            messages: Ordered chat messages (system/user/assistant)
            timeout: Request timeout in seconds (the client default applies when None)
            max_tokens: Maximum tokens to generate

        Returns:
            Reply text

        Raises:
            UpstreamUnavailable: Timeout, connection failure or rate limit
            UpstreamError: Authentication failure, other API error or an empty reply
        """
        start_time = time.time()

        try:
            logger.debug(f"Requesting completion: model={self.model}, messages={len(messages)}")

            response = self.client.chat.completions.create(
                model=self.model,
                messages=[m.to_dict() for m in messages],
                max_tokens=max_tokens,
                temperature=0.5,
                timeout=timeout if timeout is not None else NOT_GIVEN
            )

            latency_ms = int((time.time() - start_time) * 1000)

            text = response.choices[0].message.content if response.choices else None
            if not text or not text.strip():
                raise self._error(
                    UpstreamError, "EMPTY_RESPONSE",
                    "Chat completion returned no reply content.", latency_ms
                )

            usage = getattr(response, "usage", None)
            logger.info(
                f"Generated response: model={self.model}, "
                f"input_tokens={getattr(usage, 'prompt_tokens', None)}, "
                f"output_tokens={getattr(usage, 'completion_tokens', None)}, "
                f"latency={latency_ms}ms"
            )
            return text

        except ChatbotError:
            raise

        except APITimeoutError as e:
            raise self._error(
                UpstreamUnavailable, "TIMEOUT_ERROR",
                "Request timed out. Please try again.", self._latency(start_time), e
            ) from e

        except APIConnectionError as e:
            raise self._error(
                UpstreamUnavailable, "CONNECTION_ERROR",
                "Could not reach the chat completion service.", self._latency(start_time), e
            ) from e

        except RateLimitError as e:
            raise self._error(
                UpstreamUnavailable, "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                self._latency(start_time), e, retry_after=60
            ) from e

        except AuthenticationError as e:
            raise self._error(
                UpstreamError, "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.", self._latency(start_time), e
            ) from e

        except APIError as e:
            raise self._error(
                UpstreamError, "API_ERROR",
                f"Groq API error: {str(e)}", self._latency(start_time), e
            ) from e

        except Exception as e:
            raise self._error(
                UpstreamError, "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                self._latency(start_time), e, error_type=type(e).__name__
            ) from e

    def _error(
        self,
        error_class: type,
        code: str,
        message: str,
        latency_ms: int,
        cause: Optional[Exception] = None,
        **extra: Any
    ) -> ChatbotError:
        details: Dict[str, Any] = {"model": self.model, "latency_ms": latency_ms, **extra}
        if cause is not None:
            details["original_error"] = str(cause)

        error = error_class(message, code=code, details=details)
        logger.error(
            f"{code}: model={self.model}, latency={latency_ms}ms, error={cause or message}",
            exc_info=cause is not None,
            extra={"error_code": code, "error_details": details}
        )
        return error

    @staticmethod
    def _latency(start_time: float) -> int:
        return int((time.time() - start_time) * 1000)
