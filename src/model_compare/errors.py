"""Error taxonomy shared by every pipeline component.

All errors are raised synchronously at the call that would break a contract
and are never replaced by default values further up the stack.
"""


class ModelCompareError(Exception):
    """Base class for all model_compare errors."""


class InvalidArgument(ModelCompareError, ValueError):
    """Bad fraction, threshold, policy or other argument value."""


class InvalidThreshold(InvalidArgument):
    """Threshold outside the open interval (0, 1) or not strictly increasing."""


class EmptyDataset(ModelCompareError, ValueError):
    """A dataset or partition has no rows."""


class EmptyInput(ModelCompareError, ValueError):
    """Scores, labels or thresholds are empty."""


class LengthMismatch(ModelCompareError, ValueError):
    """Two sequences that must be aligned by index have different lengths."""


class NoNonMissingValues(ModelCompareError, ValueError):
    """A field has no non-missing values to compute a fill statistic from."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field '{field}' has no non-missing values; cannot impute")


class UnsupportedOption(ModelCompareError, ValueError):
    """Unknown learner type or training option."""


class UnreachableTarget(ModelCompareError, ValueError):
    """No row of a sweep table satisfies the requested constraint."""


class TrainingTimeout(ModelCompareError):
    """Scheduled model-training jobs did not all finish in time."""


class PipelineStageError(ModelCompareError):
    """A pipeline stage failed; carries the stage name and the original error."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {type(cause).__name__}: {cause}")
