"""Agent mode enumeration."""
from enum import Enum


class AgentMode(str, Enum):
    """Which tool subset and conversational goal governs a turn."""

    RECOMMENDATION = "recommendation"  # Answering questions, suggesting drinks
    ORDERING = "ordering"  # Building and confirming the draft

    def __str__(self) -> str:
        """Return the string value of the mode."""
        return self.value
