"""
Assistant Core - classifier, knowledge base and engine.

Nothing in here touches the database or the network. The engine gets a
recipe store and a workstate handed in and hands back a reply.
"""

from recipe_assistant.services.assistant.classifier import ClassifierContext, IntentClassifier, classify
from recipe_assistant.services.assistant.engine import (
    ActionKind,
    AssistantAction,
    AssistantEngine,
    AssistantReply,
)
from recipe_assistant.services.assistant.knowledge_base import KnowledgeBase, get_knowledge_base

__all__ = [
    "ActionKind",
    "AssistantAction",
    "AssistantEngine",
    "AssistantReply",
    "ClassifierContext",
    "IntentClassifier",
    "KnowledgeBase",
    "classify",
    "get_knowledge_base",
]
