"""Text-generation stage: provider clients, prompts, outline planning, and assembly."""

from .assembler import ScriptAssembler
from .http_client import ProviderError
from .planner import ChapterPlanner, chapter_count, parse_outline
from .prompts import PromptLibrary
from .text_clients import AnthropicMessagesClient, OpenAIChatClient, TextGenerationClient

__all__ = [
    "AnthropicMessagesClient",
    "ChapterPlanner",
    "OpenAIChatClient",
    "PromptLibrary",
    "ProviderError",
    "ScriptAssembler",
    "TextGenerationClient",
    "chapter_count",
    "parse_outline",
]
