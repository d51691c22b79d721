"""Tests for prompt assembly."""

from tax_gpt.assistant import PromptAssembler, PromptTemplates, Retriever
from tax_gpt.assistant.prompts import format_history, truncate
from tax_gpt.storage import Message, Role
from tax_gpt.utils.config import HistoryConfig, RetrievalConfig

CHUNKS = [
    "The standard deduction for single filers is $15,750.",
    "Filing status rules.",
    "Earned income credit limits.",
]


def _assembler(store, **retrieval) -> PromptAssembler:
    return PromptAssembler(Retriever(CHUNKS), store, RetrievalConfig(**retrieval), HistoryConfig())


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghij", 4) == "abcd..."


def test_format_history_previews_each_message():
    messages = [
        Message(role=Role.USER, content="x" * 150),
        Message(role=Role.ASSISTANT, content="Sure."),
    ]

    assert format_history(messages, 100) == f"User: {'x' * 100}...\nAssistant: Sure."


def test_first_turn_without_history(store):
    store.create("fresh")

    context = _assembler(store).build_context("standard deduction")

    assert context.is_first_turn is True
    assert context.history == ""
    assert context.context.startswith(CHUNKS[0])
    assert "\n---\n" in context.context


def test_not_first_turn_with_history(store):
    store.create("ongoing")
    store.append_message(Role.USER, "Hello")
    store.append_message(Role.ASSISTANT, "Hi there")

    context = _assembler(store).build_context("credit")

    assert context.is_first_turn is False
    assert context.history == "User: Hello\nAssistant: Hi there"


def test_context_is_truncated_to_budget(store):
    store.create("budget")

    context = _assembler(store, max_context_chars=20).build_context("standard")

    assert context.context == CHUNKS[0][:20] + "..."


def test_history_limited_to_recent_pairs(store):
    store.create("long")
    for i in range(5):
        store.append_message(Role.USER, f"q{i}")
        store.append_message(Role.ASSISTANT, f"a{i}")

    history = _assembler(store).build_context("q").history

    assert history.splitlines() == ["User: q2", "Assistant: a2", "User: q3", "Assistant: a3", "User: q4", "Assistant: a4"]


def test_build_messages_order(store):
    store.create("order")
    store.append_message(Role.USER, "Earlier question")
    store.append_message(Role.ASSISTANT, "Earlier answer")

    messages = _assembler(store).build_messages("standard deduction")

    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[-1] == {"role": "user", "content": "standard deduction"}
    assert "OPENING GREETING" not in messages[0]["content"]
    assert "RECENT CONVERSATION:\nUser: Earlier question" in messages[0]["content"]


def test_build_messages_first_turn_uses_greeting(store):
    store.create("greeting")

    messages = _assembler(store).build_messages(PromptTemplates.WELCOME_REQUEST)

    assert len(messages) == 2
    system = messages[0]["content"]
    assert system.startswith(PromptTemplates.SYSTEM_PROMPT)
    assert "OPENING GREETING" in system
    assert "IRS PUBLICATION 17 (2025) CONTEXT:" in system
    assert "RECENT CONVERSATION" not in system


def test_system_prompt_lists_starter_questions():
    prompt = PromptTemplates.get_system_prompt("ctx", "", is_first_turn=True)

    for question in PromptTemplates.STARTER_QUESTIONS:
        assert question in prompt
