"""
Prompt templates and context assembly for the tax assistant.
"""

from typing import NamedTuple, Sequence

from tax_gpt.storage import Message, Role, SessionStore
from tax_gpt.utils.config import HistoryConfig, RetrievalConfig

from .retriever import Retriever

TRUNCATION_MARKER = "..."


class PromptTemplates:
    """
    Instruction templates for the tax savings assistant.
    """

    SYSTEM_PROMPT = """You are Tax GPT, a tax savings assistant powered by IRS Publication 17 (2025).

YOUR MISSION:
Help users legally minimize their tax liability and keep more of their money. Every interaction should move toward identifying deductions, credits, and strategies they might be missing.

CORE PRINCIPLES:
1. TAX SAVINGS FIRST - Always look for opportunities to reduce taxable income or increase credits
2. PROACTIVE GUIDANCE - Don't just answer questions; suggest related savings opportunities
3. SPECIFICITY WINS - Give exact dollar amounts, income thresholds, and form numbers
4. CLARIFY TO SAVE - Ask about their situation to find credits/deductions they qualify for

APPROACH:
- Frame answers around "Here's how this affects your bottom line..."
- After answering, suggest 1-2 related tax savings opportunities
- Ask: "Do you also [qualify for X / have Y situation]?" to uncover more savings
- Always mention: "Many people miss this deduction..." when relevant

RULES:
- Answer using ONLY the IRS Publication 17 context provided
- Be conversational and enthusiastic about finding savings
- Use bullet points for deductions/credits lists
- Cite specific sections, tables, and dollar thresholds
- Format: $X,XXX for money, percentages as X%
- Never suggest illegal tax evasion - only legal avoidance strategies"""

    STARTER_QUESTIONS = [
        "What's the standard deduction for 2025 and should I itemize instead?",
        "Am I missing any tax credits I qualify for?",
        "How can I reduce my taxable income before the deadline?",
        "What's the best filing status for my situation?",
    ]

    WELCOME_REQUEST = "Introduce yourself and suggest some tax savings questions I could ask"

    @classmethod
    def get_greeting_block(cls) -> str:
        """Opening greeting the model should use on the first turn of a session."""
        questions = "\n".join(f"• {q}" for q in cls.STARTER_QUESTIONS)
        return f"""OPENING GREETING (use this exactly or adapt slightly):
"Welcome to Tax GPT! 💰

I'm here to help you pay less in taxes and keep more of your hard-earned money. Whether you're filing for the first time or looking for deductions you might have missed, I'll search through IRS Publication 17 to find every legal way to reduce your tax bill.

Quick questions to get you thinking about savings:
{questions}

What would you like to explore? I'm ready to help you save!\""""

    @classmethod
    def get_system_prompt(cls, context: str, history: str, is_first_turn: bool = False) -> str:
        """
        Build the system instruction for one turn.

        Args:
            context: Retrieved publication excerpts
            history: Compact transcript of recent messages
            is_first_turn: Use the onboarding variant with the greeting block

        Returns:
            System prompt text
        """
        parts = [cls.SYSTEM_PROMPT]
        if is_first_turn:
            parts.append(cls.get_greeting_block())
        parts.append(f"IRS PUBLICATION 17 (2025) CONTEXT:\n{context}")
        if history:
            parts.append(f"RECENT CONVERSATION:\n{history}")
        return "\n\n".join(parts)


class PromptContext(NamedTuple):
    """Everything the system prompt is built from."""
    context: str
    history: str
    is_first_turn: bool


def truncate(text: str, limit: int) -> str:
    """Cut text to ``limit`` characters, marking the cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def format_history(messages: Sequence[Message], preview_chars: int = 100) -> str:
    """Render messages as a compact "Role: content" transcript."""
    return "\n".join(
        f"{'User' if m.role == Role.USER else 'Assistant'}: {truncate(m.content, preview_chars)}"
        for m in messages
    )


class PromptAssembler:
    """Combines retrieved context, recent history and the user query."""

    def __init__(
        self,
        retriever: Retriever,
        store: SessionStore,
        retrieval: RetrievalConfig = RetrievalConfig(),
        history: HistoryConfig = HistoryConfig(),
    ):
        self.retriever = retriever
        self.store = store
        self.retrieval = retrieval
        self.history = history

    def recent_history(self) -> list[Message]:
        return self.store.recent_messages(self.history.prompt_history_turns)

    def build_context(self, query: str) -> PromptContext:
        """
        Gather retrieval context and history for a query.

        Returns:
            PromptContext; ``is_first_turn`` is True when there is no history yet
        """
        chunks = self.retriever.find_relevant(query, self.retrieval.max_chunks)
        context = truncate(self.retrieval.separator.join(chunks), self.retrieval.max_context_chars)

        recent = self.recent_history()
        history = format_history(recent, self.history.preview_chars)

        return PromptContext(context, history, is_first_turn=not recent)

    def build_messages(self, query: str) -> list[dict[str, str]]:
        """
        Build the ordered chat messages for a completion request.

        Returns:
            System instruction, recent history messages, then the new user message
        """
        prompt_context = self.build_context(query)
        system = PromptTemplates.get_system_prompt(*prompt_context)

        messages = [{"role": "system", "content": system}]
        messages.extend({"role": m.role.value, "content": m.content} for m in self.recent_history())
        messages.append({"role": "user", "content": query})
        return messages
