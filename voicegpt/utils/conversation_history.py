"""
Append-only conversation history seeded with a system instruction.
"""

from typing import Dict, List, Tuple

from ..models.data_models import ConversationMessage, MessageRole


class ConversationHistory:
    """
    Ordered, role-tagged messages replayed to the completion service.

    Always starts with exactly one system message and only ever grows.
    """

    def __init__(self, system_prompt: str):
        self._messages: List[ConversationMessage] = [
            ConversationMessage(role=MessageRole.SYSTEM, content=system_prompt)
        ]

    @property
    def system_prompt(self) -> str:
        return self._messages[0].content

    def append(self, role: MessageRole, content: str) -> ConversationMessage:
        """
        Append a user or assistant message.

        Raises:
            ValueError: For a second system message
        """
        role = MessageRole(role)
        if role == MessageRole.SYSTEM:
            raise ValueError("History holds exactly one system message")
        message = ConversationMessage(role=role, content=content)
        self._messages.append(message)
        return message

    def add_user(self, content: str) -> ConversationMessage:
        return self.append(MessageRole.USER, content)

    def add_assistant(self, content: str) -> ConversationMessage:
        return self.append(MessageRole.ASSISTANT, content)

    @property
    def messages(self) -> Tuple[ConversationMessage, ...]:
        return tuple(self._messages)

    @property
    def is_fresh(self) -> bool:
        """True while only the seed system message is present."""
        return len(self._messages) == 1

    @property
    def turn_count(self) -> int:
        return sum(1 for m in self._messages if m.role == MessageRole.ASSISTANT)

    def to_api(self) -> List[Dict[str, str]]:
        """Messages in the format completion services expect."""
        return [m.to_dict() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)
