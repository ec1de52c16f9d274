"""Exception taxonomy for scoring, lookup and batch orchestration.

Row-level errors (score type, reliability, test type, lookup) stay local to the
row that raised them. Domain-level errors are caught by the orchestrator.
Only AlreadyRunning and RegistryUnavailable end a whole run.
"""


class ScoringError(Exception):
    """Base class for all pipeline errors."""


# ── Row level ──────────────────────────────────────────────────────────

class InvalidScoreType(ScoringError, ValueError):
    def __init__(self, score_type):
        self.score_type = score_type
        super().__init__(f"Unrecognized score type: {score_type!r}")


class InvalidReliability(ScoringError, ValueError):
    def __init__(self, reliability):
        self.reliability = reliability
        super().__init__(f"Reliability must be in (0, 1], got {reliability!r}")


class InvalidTestType(ScoringError, ValueError):
    def __init__(self, test_type):
        self.test_type = test_type
        super().__init__(f"No range label set for test type {test_type!r}")


class LookupNotFound(ScoringError, LookupError):
    def __init__(self, test, scale):
        self.test = test
        self.scale = scale
        super().__init__(f"No lookup entry for test={test!r}, scale={scale!r}")


# ── Domain level ───────────────────────────────────────────────────────

class MissingColumnsError(ScoringError, ValueError):
    def __init__(self, missing: list[str], context: str = "dataset"):
        self.missing = list(missing)
        super().__init__(f"{context} is missing required columns: {', '.join(self.missing)}")


class DomainDataMissing(ScoringError):
    """A domain has no eligible rows; recorded as skipped, not as an error."""


class DomainProcessingError(ScoringError):
    def __init__(self, domain_key: str, cause: BaseException):
        self.domain_key = domain_key
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)


# ── Run level ──────────────────────────────────────────────────────────

class AlreadyRunning(RuntimeError):
    """Another batch run holds the run guard."""


class RegistryUnavailable(RuntimeError):
    """The domain registry could not be read or parsed."""
