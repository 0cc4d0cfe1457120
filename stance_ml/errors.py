"""
errors.py
----------
Exceptions raised by the stance classification pipeline.
"""


class ConfigError(ValueError):
    """Invalid configuration, detected before any fitting starts."""


class BalancingError(RuntimeError):
    """Neither SMOTE nor random under-sampling could balance a sub-problem."""
