"""
Custom exceptions for MDB_YCSB.

Configuration problems are fatal to a benchmark run; connection problems leave
the adapter unusable. Both carry a context dictionary for logging.
"""

from typing import Any, Dict, Optional


class MongoDBAdapterError(RuntimeError):
    """
    Base exception for MongoDB binding errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (endpoint,
                 table, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class InitializationError(MongoDBAdapterError):
    """
    Raised when the connection set cannot be established, or when an
    operation is attempted on an adapter that never initialized.

    Attributes:
        message: Error message
        mongo_uri: Endpoint that failed (if available)
        db_name: Database name (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if mongo_uri:
            context["mongo_uri"] = mongo_uri
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.mongo_uri = mongo_uri
        self.db_name = db_name


class ConfigurationError(MongoDBAdapterError):
    """
    Raised when a harness property is invalid.

    Attributes:
        message: Error message
        config_key: Property key that caused the error (if available)
        config_value: Property value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value
