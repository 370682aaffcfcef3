from src.agents.dialogue_service import DialogueService, OpenAIDialogueService

__all__ = [
    "DialogueService",
    "OpenAIDialogueService",
]
