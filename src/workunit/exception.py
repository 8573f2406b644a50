class WorkUnitError(Exception):
    """Base exception for every error raised by workunit"""

    pass
