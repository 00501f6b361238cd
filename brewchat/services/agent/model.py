"""Language model capability."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional, Union

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from brewchat.core.errors import ModelUnavailable
from brewchat.services.session.models import ChatMessage, MessageRole

logger = logging.getLogger(__name__)


class TextReply(BaseModel):
    """The model answered the customer."""

    kind: Literal["text"] = "text"
    text: str


class ToolCall(BaseModel):
    """The model asked to run one tool."""

    kind: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments: Optional[Dict[str, Any]] = None  # None when the model sent invalid JSON
    raw_arguments: str = ""


ModelResponse = Union[TextReply, ToolCall]


class LanguageModel(ABC):
    """Given history and tool schemas, produce a text reply or one tool call."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        tools: List[Dict[str, Any]],
    ) -> ModelResponse:
        """Run one model invocation."""
        pass


def to_openai_messages(history: List[ChatMessage]) -> List[Dict[str, Any]]:
    """Translate session history into chat completion messages."""
    messages: List[Dict[str, Any]] = []
    for message in history:
        if message.role == MessageRole.USER:
            messages.append({"role": "user", "content": message.content})
        elif message.role == MessageRole.AGENT and message.tool_call is not None:
            call = message.tool_call
            arguments = json.dumps(call.arguments) if call.arguments is not None else "{}"
            messages.append({
                "role": "assistant",
                "content": message.content or None,
                "tool_calls": [{
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": arguments},
                }],
            })
        elif message.role == MessageRole.AGENT:
            messages.append({"role": "assistant", "content": message.content})
        elif message.role == MessageRole.TOOL and message.tool_result is not None:
            result = message.tool_result
            messages.append({
                "role": "tool",
                "tool_call_id": result.tool_call_id,
                "content": json.dumps(
                    result.model_dump(exclude={"tool_call_id"}, exclude_none=True)
                ),
            })
    return messages


class OpenAIChatModel(LanguageModel):
    """Language model backed by OpenAI chat completions with function tools."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        client: Optional[AsyncOpenAI] = None,
    ):
        # Retries are handled by the orchestrator
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=0)
        self.model = model
        self.temperature = temperature

    async def complete(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        tools: List[Dict[str, Any]],
    ) -> ModelResponse:
        messages = [{"role": "system", "content": system_prompt}] + to_openai_messages(history)
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
            kwargs["parallel_tool_calls"] = False

        logger.debug(f"[MODEL] Invoking {self.model} with {len(messages)} messages, {len(tools)} tools")
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            logger.warning(f"[MODEL] OpenAI call failed: {type(e).__name__}: {e}")
            raise ModelUnavailable("The language model is unavailable") from e

        message = response.choices[0].message
        if message.tool_calls:
            if len(message.tool_calls) > 1:
                logger.warning(
                    f"[MODEL] Model returned {len(message.tool_calls)} tool calls; "
                    f"only the first is executed"
                )
            call = message.tool_calls[0]
            raw_arguments = call.function.arguments or "{}"
            try:
                arguments = json.loads(raw_arguments)
            except json.JSONDecodeError:
                arguments = None
            if not isinstance(arguments, dict):
                arguments = None
            logger.info(f"[MODEL] Tool call: {call.function.name}({raw_arguments})")
            return ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=arguments,
                raw_arguments=raw_arguments,
            )

        text = (message.content or "").strip()
        logger.info(f"[MODEL] Text reply ({len(text)} chars)")
        return TextReply(text=text)
