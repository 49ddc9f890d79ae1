"""
Custom exceptions for the algorithms package.
"""

class BranchTraceError(Exception):
    """Base exception for branchtrace errors.
    
    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class ConvergenceError(BranchTraceError):
    """Raised when an algorithm fails to converge.
    
    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class EngineError(BranchTraceError):
    """Raised when an exception occurs in the engine.
    
    Parameters
    ----------
    message : str
        The error message.
    """
    
    def __init__(self, message: str):
        super().__init__(message)


class EventDefinitionError(BranchTraceError):
    """Raised when an event set cannot be built from the given probes.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class ArityMismatchError(EventDefinitionError):
    """Raised when an evaluator's output width disagrees with its event.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)
