import logging
import re
from dataclasses import dataclass

from ..errors import ModelGatewayError
from ..gateway import Conversation

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```[\w-]*[ \t]*\n?(.*?)```", re.DOTALL)
COMMENT_LINE = re.compile(r"^\s*//.*$\n?", re.MULTILINE)


@dataclass(frozen=True)
class GeneratedArtifact:
    code: str
    valid: bool
    kind: str


def extract_first_code_block(text: str) -> str:
    """Contents of the first fenced code block, or the whole text when there is none."""
    if not text:
        return ""
    match = CODE_FENCE.search(text)
    if match:
        return match.group(1)
    # An opening fence the model never closed
    return re.sub(r"^\s*```[\w-]*[ \t]*\n?", "", text)


def slice_from(text: str, keyword: str) -> str:
    """Drop any leading prose before the first ``keyword`` at the start of a line."""
    match = re.search(r"^[ \t]*" + re.escape(keyword) + r"\b", text, re.MULTILINE)
    if match:
        return text[match.start():]
    return text


def strip_comment_lines(text: str) -> str:
    return COMMENT_LINE.sub("", text)


def preview(code: str, limit: int = 300) -> str:
    return (code or "")[:limit]


class BaseAgent:
    """
    Shared plumbing for the generation agents. Every invocation owns a fresh
    ``Conversation``; artifacts move between stages only as explicit arguments.
    """

    kind = "code"

    def __init__(self, gateway, system_prompt: str = None):
        self.gateway = gateway
        self.system_prompt = system_prompt

    def _invoke(self, prompt: str) -> str:
        conversation = Conversation(self.system_prompt)
        conversation.user(prompt)
        try:
            reply = self.gateway.chat(conversation)
        except ModelGatewayError:
            logger.error("❌ %s agent: model call failed", self.kind.capitalize())
            raise
        conversation.assistant(reply)
        logger.debug("%s agent received %d characters", self.kind.capitalize(), len(reply or ""))
        return reply or ""
