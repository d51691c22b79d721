"""Assistant modules for Tax GPT."""

from .commands import CommandHandler, ExitRequested, Prompter
from .knowledge_base import KnowledgeBase, chunk_text
from .llm_client import CompletionAuthError, CompletionClient, CompletionError
from .prompts import PromptAssembler, PromptContext, PromptTemplates
from .retriever import Retriever, ScoredChunk, find_relevant
from .tax_assistant import TaxGPT

__all__ = [
    "CommandHandler",
    "ExitRequested",
    "Prompter",
    "KnowledgeBase",
    "chunk_text",
    "CompletionAuthError",
    "CompletionClient",
    "CompletionError",
    "PromptAssembler",
    "PromptContext",
    "PromptTemplates",
    "Retriever",
    "ScoredChunk",
    "find_relevant",
    "TaxGPT",
]
