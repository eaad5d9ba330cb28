class ESError(Exception):
    """Base class of all errors raised by seedopt."""


class ConfigurationError(ESError):
    """Exception raised when an engine or optimizer is configured with invalid values.

    Raised at construction time, before any state exists: malformed parameter
    shapes, unsupported dtypes, duplicate parameter names, a non-positive
    candidate count or noise standard deviation.

    Parameters
    ----------
    message : str
        Description of the invalid configuration.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return self.message


class EvaluationError(ESError):
    """Exception raised when computing noise, perturbed values or a loss fails.

    Wraps the original exception so the caller can inspect it, while the
    engine guarantees that no partial parameter update was committed.

    Parameters
    ----------
    message : str
        Description of the failed operation.
    candidate : int, optional
        Index of the candidate whose evaluation failed, if known.
    exception : Exception, optional
        The underlying exception.

    Attributes
    ----------
    candidate : int or None
        Index of the failing candidate.
    exception : Exception or None
        The underlying exception.

    Notes
    -----
    The core never retries. Retry policy belongs to the caller driving the
    generation loop.
    """

    def __init__(self, message: str, candidate: int = None, exception: Exception = None):
        self.message = message
        self.candidate = candidate
        self.exception = exception
        super().__init__(self.message)

    def __str__(self):
        if self.exception is None:
            return self.message
        return f"{self.message}: {type(self.exception).__name__}: {self.exception}"


class StateError(ESError):
    """Exception raised when an operation is invalid in the engine's current state.

    Examples are rewinding at generation 0, passing a weight vector whose length
    differs from the configured candidate count, or applying a proposal that was
    scored for a different generation. Always a usage error.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return self.message
