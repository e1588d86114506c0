from enum import Enum


class MessageRole(Enum):
    """Conversation message roles."""

    SYSTEM = "system"
    HUMAN = "user"
    ASSISTANT = "assistant"


class CommandKind(Enum):
    """Kinds of executable commands."""

    DIAGNOSTIC = "diagnostic"
    SHELL = "shell"


class BatchDecision(Enum):
    """Operator answers to the safe-mode batch confirmation."""

    YES = "yes"
    NO = "no"
    EDIT = "edit"


class ProgressStatus(Enum):
    """Outcome reported for a single command in a batch."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class AttemptStatus(Enum):
    """Outcome of a single command suggestion attempt."""

    NO_COMMANDS = "no_commands"
    EMPTY_RESULTS = "empty_results"
    LLM_ERROR = "llm_error"
    SUCCESS = "success"


class BaselineLevel(Enum):
    """How much cluster state the first-turn baseline batch collects."""

    MINIMAL = "minimal"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"
