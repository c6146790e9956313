"""
Chat transport abstractions for the toolrelay conversation package.

Defines the ``ChatTransport`` Protocol so the orchestrator can work with any
OpenAI-compatible chat-completions endpoint, and the concrete
``OpenAICompatibleTransport`` built on ``openai.AsyncOpenAI``.

The transport is a pure request/response boundary: it renders the
conversation to the wire format, issues one request, and parses the first
choice back into an ``AssistantMessage``.  It performs no retries and keeps no
state between calls.

Also provides:
- ``ToolSpec`` / ``ParameterSpec``, the declarative tool schema.
- The ``TransportError`` exception hierarchy.
- ``UsageStats`` for token usage reporting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

import httpx
from openai import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
)

from toolrelay.config import Settings, require_api_key
from toolrelay.conversation.messages import (
    AssistantMessage,
    ChatMessage,
    ToolCallRequest,
)

logger = logging.getLogger(__name__)

# Text of EmptyResponseError, also returned to the user by the orchestrator.
NO_RESPONSE_TEXT = "No response from LLM"


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class TransportError(Exception):
    """Raised when the chat endpoint cannot produce a usable response.

    Attributes:
        status_code: HTTP status code from the endpoint, or ``None`` if no
            response was received.
        body: Raw response body for diagnostics (may be empty).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedResponseError(TransportError):
    """Raised when the response body cannot be parsed as a chat completion."""


class EmptyResponseError(TransportError):
    """Raised when the endpoint answers with zero choices."""


class TransportTimeoutError(TransportError):
    """Raised when the request exceeds the configured timeout."""


class TransportConnectionError(TransportError):
    """Raised when the chat endpoint cannot be reached."""


# ---------------------------------------------------------------------------
# Tool schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParameterSpec:
    """Declared type and description of one tool parameter.

    Attributes:
        type: JSON Schema type name: ``"string"``, ``"number"``,
            ``"integer"`` or ``"boolean"``.
        description: Text shown to the model.
        enum: Optional tuple of allowed values.
    """

    type: str
    description: str = ""
    enum: tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        if self.enum is not None:
            object.__setattr__(self, "enum", tuple(self.enum))

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        return schema


@dataclass(frozen=True)
class ToolSpec:
    """Describes a callable tool available to the model.

    Attributes:
        name: The tool's unique name (used by the model to invoke it).
        description: Human-readable description shown in the tool prompt.
        parameters: Parameter name -> ``ParameterSpec``, in declaration order.
        required: Names of the parameters the model must supply.
    """

    name: str
    description: str
    parameters: Mapping[str, ParameterSpec] = field(default_factory=dict)
    required: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        unknown = set(self.required) - set(self.parameters)
        if unknown:
            raise ValueError(
                f"Tool {self.name!r} requires undeclared parameter(s): "
                f"{', '.join(sorted(unknown))}"
            )
        # Freeze the mapping so a registered spec cannot change underneath us.
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, "required", frozenset(self.required))

    def to_openai_format(self) -> dict[str, Any]:
        """Serialise to OpenAI tool definition format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        name: param.to_json_schema()
                        for name, param in self.parameters.items()
                    },
                    "required": [name for name in self.parameters if name in self.required],
                },
            },
        }


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


@dataclass
class UsageStats:
    """Token usage recorded for a single completion call."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatResponse:
    """Result of a single chat request.

    Attributes:
        message: The assistant message, carrying any pending tool calls.
        finish_reason: Finish reason reported by the endpoint.
        usage: Token usage for this call, or ``None`` if unavailable.
    """

    message: AssistantMessage
    finish_reason: str | None = None
    usage: UsageStats | None = None


# ---------------------------------------------------------------------------
# ChatTransport Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ChatTransport(Protocol):
    """Protocol for chat endpoints used by the orchestrator."""

    async def send(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolSpec] | None = None,
    ) -> ChatResponse:
        """Send one chat request.

        Args:
            messages: The conversation history, in order.
            tools: Tool specs to advertise, or ``None`` to omit ``tools`` and
                ``tool_choice`` from the request.

        Raises:
            TransportError: On non-2xx status, malformed bodies, empty
                results, timeouts or connection failures.
        """
        ...


# ---------------------------------------------------------------------------
# Concrete transport implementation
# ---------------------------------------------------------------------------


def _response_body(exc: APIStatusError | APIResponseValidationError) -> str:
    text = getattr(exc.response, "text", None)
    if isinstance(text, str):
        return text
    if exc.body is None:
        return ""
    return exc.body if isinstance(exc.body, str) else str(exc.body)


class OpenAICompatibleTransport:
    """Chat transport backed by any OpenAI-compatible endpoint.

    Attributes:
        base_url: The API base URL.
        model: The model identifier.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://opencode.ai/zen/v1",
        model: str = "kimi-k2.5",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        client_kwargs: dict[str, Any] = {}
        if http_client is not None:
            client_kwargs["http_client"] = http_client
        self._client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
            **client_kwargs,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAICompatibleTransport:
        """Build a transport from settings.

        Raises:
            ConfigError: If no API key is configured.
        """
        return cls(
            api_key=require_api_key(settings),
            base_url=settings.base_url,
            model=settings.model,
            timeout=settings.request_timeout,
        )

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolSpec] | None = None,
    ) -> dict[str, Any]:
        """Render the request body (minus transport headers)."""
        request: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_openai_format() for message in messages],
        }
        if tools:
            request["tools"] = [spec.to_openai_format() for spec in tools]
            request["tool_choice"] = "auto"
        return request

    async def send(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolSpec] | None = None,
    ) -> ChatResponse:
        """Call the endpoint and return the first choice as a ``ChatResponse``.

        Raises:
            TransportError: If the endpoint returns a non-2xx status.
            MalformedResponseError: If the body is not a chat completion.
            EmptyResponseError: If the response carries no choices.
            TransportTimeoutError: If the request times out.
            TransportConnectionError: If the endpoint cannot be reached.
        """
        request = self.build_request(messages, tools)

        logger.debug(
            "Chat request: model=%s, messages=%d, tools=%d",
            self.model,
            len(request["messages"]),
            len(request.get("tools", [])),
        )

        try:
            response = await self._client.chat.completions.create(**request)
        except APITimeoutError as exc:
            logger.error("Chat request timed out after %.1fs", self.timeout)
            raise TransportTimeoutError(
                f"Chat request timed out after {self.timeout}s"
            ) from exc
        except APIConnectionError as exc:
            logger.error("Chat endpoint connection failed: %s", exc)
            raise TransportConnectionError(
                f"Could not connect to chat endpoint: {exc}"
            ) from exc
        except APIStatusError as exc:
            body = _response_body(exc)
            logger.error("Chat endpoint returned status %d: %s", exc.status_code, body)
            raise TransportError(
                f"API Error: {exc.status_code} - {body}",
                status_code=exc.status_code,
                body=body,
            ) from exc
        except APIResponseValidationError as exc:
            body = _response_body(exc)
            logger.error("Malformed chat response: %s", exc)
            raise MalformedResponseError(
                f"Malformed chat response: {exc}",
                status_code=exc.status_code,
                body=body,
            ) from exc
        except ValueError as exc:
            # 2xx body that is not JSON at all.
            logger.error("Chat response body is not JSON: %s", exc)
            raise MalformedResponseError(
                f"Malformed chat response: {exc}", status_code=200
            ) from exc

        return self._parse_response(response)

    def _parse_response(self, response: Any) -> ChatResponse:
        choices = getattr(response, "choices", None)
        if choices is None or not isinstance(choices, (list, tuple)):
            raise MalformedResponseError(
                "Chat response has no 'choices' array", status_code=200
            )
        if not choices:
            raise EmptyResponseError(NO_RESPONSE_TEXT, status_code=200)

        choice = choices[0]
        message = getattr(choice, "message", None)
        if message is None:
            raise MalformedResponseError(
                "First choice carries no message", status_code=200
            )

        tool_calls: list[ToolCallRequest] = []
        for tc in message.tool_calls or []:
            function = getattr(tc, "function", None)
            if function is None:
                raise MalformedResponseError(
                    f"Tool call {tc.id!r} has no function payload", status_code=200
                )
            tool_calls.append(
                ToolCallRequest(id=tc.id, name=function.name, arguments=function.arguments)
            )

        usage: UsageStats | None = None
        if getattr(response, "usage", None) is not None:
            usage = UsageStats(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        logger.debug(
            "Chat response: finish_reason=%s, tool_calls=%d, tokens=%s",
            choice.finish_reason,
            len(tool_calls),
            usage.total_tokens if usage else "n/a",
        )

        return ChatResponse(
            message=AssistantMessage(content=message.content, tool_calls=tuple(tool_calls)),
            finish_reason=choice.finish_reason,
            usage=usage,
        )
