"""Exception types raised by the fitperf analysis core."""


class FitPerfError(Exception):
    """Base exception for analysis errors."""


class DataConsistencyError(FitPerfError):
    """Raised when aligned inputs disagree (model ids, node sets, value domains)."""


class ClusteringError(FitPerfError):
    """Raised when a 1-D clustering request cannot be honoured as asked."""


class SamplingError(FitPerfError):
    """Raised when more unique samples are requested than exist."""


class PreconditionError(FitPerfError):
    """Raised when a statistical test is called on inputs it cannot be run on."""
