"""
Model gateway: send a list of role-tagged messages, get the assistant text back.
"""
import logging
from typing import Dict, List

import together
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from .errors import ModelGatewayError

logger = logging.getLogger(__name__)

ROLES = ("system", "user", "assistant")


class Conversation:
    """Append-only transcript owned by one agent invocation."""

    def __init__(self, system: str = None):
        self._messages: List[Dict[str, str]] = []
        if system:
            self.append("system", system)

    def append(self, role: str, content: str):
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role}")
        self._messages.append({"role": role, "content": content})
        return self

    def user(self, content: str):
        return self.append("user", content)

    def assistant(self, content: str):
        return self.append("assistant", content)

    @property
    def messages(self):
        return [dict(m) for m in self._messages]

    def __len__(self):
        return len(self._messages)


def unwrap_content(content) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict):
                parts.append(str(part.get("text", "")))
            else:
                parts.append(unwrap_content(part))
        return "\n".join(parts)
    return str(content)


class ModelGateway:
    """
    Chat-completion gateway. ``provider`` is ``together`` (Together AI SDK) or
    ``openai`` (any OpenAI-compatible endpoint through langchain's ChatOpenAI).
    """

    def __init__(self, provider: str, model: str, temperature: float = 0.0,
                 api_key: str = None, api_base: str = None, client=None):
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self._client = client or self._build_client(api_key, api_base)

    @classmethod
    def from_settings(cls, settings):
        return cls(
            provider=settings.provider,
            model=settings.model,
            temperature=settings.temperature,
            api_key=settings.api_key(),
            api_base=settings.api_base,
        )

    def _build_client(self, api_key, api_base):
        if self.provider == "together":
            return together.Together(api_key=api_key)
        if self.provider == "openai":
            return ChatOpenAI(
                model=self.model,
                api_key=api_key,
                base_url=api_base,
                temperature=self.temperature,
            )
        raise ValueError(f"Unsupported provider: {self.provider}")

    def chat(self, messages) -> str:
        if isinstance(messages, Conversation):
            messages = messages.messages
        logger.debug("Sending %d message(s) to %s/%s", len(messages), self.provider, self.model)
        try:
            if self.provider == "together":
                response = self._client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                )
                return unwrap_content(response.choices[0].message.content).strip()
            reply = self._client.invoke(to_langchain_messages(messages))
            return unwrap_content(reply.content).strip()
        except Exception as e:
            logger.error("❌ Model call failed: %s", e)
            logger.error(
                "ℹ️ Check that the API key for '%s' is set, the model '%s' exists and the endpoint is reachable.",
                self.provider, self.model,
            )
            raise ModelGatewayError(f"Model call failed: {e}") from e


def to_langchain_messages(messages):
    converted = []
    for message in messages:
        role, content = message["role"], message["content"]
        if role == "system":
            converted.append(SystemMessage(content=content))
        elif role == "assistant":
            converted.append(AIMessage(content=content))
        else:
            converted.append(HumanMessage(content=content))
    return converted
