from src.conversation.driver import ConversationDriver, TurnResult
from src.conversation.events import CompletionChannel, CompletionEvent
from src.conversation.extractor import extract
from src.conversation.fallback_prompter import next_prompt
from src.conversation.reconciler import CompletionReconciler, Reconciliation, reconcile
from src.conversation.state_machine import (
    SessionState,
    SessionStateMachine,
    TransitionTrigger,
)

__all__ = [
    "ConversationDriver",
    "TurnResult",
    "CompletionChannel",
    "CompletionEvent",
    "CompletionReconciler",
    "Reconciliation",
    "reconcile",
    "extract",
    "next_prompt",
    "SessionStateMachine",
    "SessionState",
    "TransitionTrigger",
]
