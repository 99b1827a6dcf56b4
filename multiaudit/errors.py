"""Exception hierarchy for multiaudit."""


class MultiAuditError(Exception):
    """Base class for all multiaudit errors."""


class SourceParseError(MultiAuditError):
    """A file could not be read or parsed into a source model."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class AgentExecutionError(MultiAuditError):
    """An agent raised while analyzing a file (fail-fast mode only)."""

    def __init__(self, agent: str, file_path: str, cause: BaseException):
        super().__init__(f"Agent {agent} failed on {file_path}: {cause}")
        self.agent = agent
        self.file_path = file_path
        self.cause = cause


class UnsafeFixError(MultiAuditError):
    """A fix was judged unsafe to apply; the file is left untouched."""


class WatchError(MultiAuditError):
    """Unrecoverable watch-mode fault, e.g. a watched path disappeared."""
