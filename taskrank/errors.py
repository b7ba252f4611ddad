"""Exception hierarchy for taskrank.

Only cancellation propagates out of the ranking pipeline. Expansion errors
are caught by the merge step and turned into a keyword fallback.
"""


class TaskRankError(Exception):
    """Base class for all taskrank errors"""


class QueryCancelledError(TaskRankError):
    """Raised at a chunk boundary when the host cancelled the query"""


class ExpansionError(TaskRankError):
    """Raised by an expander when the provider call or its response is unusable"""

    def __init__(self, message: str, retriable: bool = False):
        super().__init__(message)
        self.retriable = retriable


class ConfigError(TaskRankError):
    """Raised when a task export or config file cannot be read at all"""
