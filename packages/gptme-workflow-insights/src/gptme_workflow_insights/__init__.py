"""gptme-workflow-insights - When did AI assistance actually help?

Correlates shell struggles, AI assistant conversations and git commits
into workflow patterns, session archetypes and a productivity score.

Installation:
    uv pip install -e .
"""

from .config import InsightsConfig
from .correlation import WorkflowPatternKind, correlate_workflows, forward_window_join
from .engine import InsightsReport, analyze, analyze_batch
from .events import AIConversation, Commit, ShellCommand, StruggleEpisode, StruggleKind
from .sessions import SessionArchetype, classify_session
from .struggles import detect_struggles

__version__ = "0.1.0"

__all__ = [
    "AIConversation",
    "Commit",
    "InsightsConfig",
    "InsightsReport",
    "SessionArchetype",
    "ShellCommand",
    "StruggleEpisode",
    "StruggleKind",
    "WorkflowPatternKind",
    "analyze",
    "analyze_batch",
    "classify_session",
    "correlate_workflows",
    "detect_struggles",
    "forward_window_join",
]
