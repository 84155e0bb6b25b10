"""System prompt composition for grounded support answers."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from supportbot.core.config import settings

PERSONA = """You are a helpful, friendly, and professional AI customer support assistant.

Your key behaviors:
- Be concise but thorough in your responses
- If you don't know something, admit it and offer to connect with a human agent
- Always be polite and empathetic
- Use clear, simple language
- Format responses with markdown when helpful (lists, bold for emphasis, etc.)
- If the user seems frustrated, acknowledge their feelings first
"""

KNOWLEDGE_BASE_INSTRUCTION = (
    "Use the above context to answer questions accurately. If the answer is in the context, "
    "use it. If not, say you'll need to check with the team."
)

FAQ_INSTRUCTION = "Use these FAQs to answer common questions directly."


class QuestionAnswer(Protocol):
    question: str
    answer: str


class PromptComposer:
    """Build the instruction block sent ahead of the conversation.

    Composition is pure: absent context or FAQs simply omit their section.
    """

    def __init__(self, max_faqs: Optional[int] = None) -> None:
        self.max_faqs = max_faqs or settings.FAQ_CONTEXT_LIMIT

    def compose(self, context: Optional[str] = None, faqs: Sequence[QuestionAnswer] = ()) -> str:
        sections = [PERSONA]

        if context and context.strip():
            sections.append(f"### Company Knowledge Base:\n{context}\n\n{KNOWLEDGE_BASE_INSTRUCTION}\n")

        selected = list(faqs)[: self.max_faqs]
        if selected:
            entries = "\n\n".join(
                f"Q{index}: {faq.question}\nA{index}: {faq.answer}" for index, faq in enumerate(selected, start=1)
            )
            sections.append(f"### Frequently Asked Questions:\n\n{entries}\n\n{FAQ_INSTRUCTION}\n")

        return "\n".join(sections)
