"""Error logging with indexing context."""

from typing import Any, Dict, Optional
from targetindex.config.logging import get_logger

logger = get_logger(__name__)


def describe_error(error: Exception) -> str:
    """Short "[Type] message" form used in logs and run results."""
    return f"[{type(error).__name__}] {error}"


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    operation: Optional[str] = None,
    phase: Optional[str] = None,
    owner_name: Optional[str] = None,
    log_level: str = "error",
) -> str:
    """
    Log an error with its type, message, indexing context and traceback.

    Args:
        error: The exception that occurred
        context: Additional context (e.g. {'roles_examined': 12})
        operation: Description of the operation being performed
        phase: Indexer phase the error happened in
        owner_name: Name of the node or role being indexed
        log_level: Logging level ('error', 'warning', 'critical')

    Returns:
        The logged message
    """
    context_parts = []
    if operation:
        context_parts.append(f"Operation: {operation}")
    if phase:
        context_parts.append(f"Phase: {phase}")
    if owner_name:
        context_parts.append(f"Owner: {owner_name}")
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        context_parts.append(f"Context: {context_str}")

    error_msg = describe_error(error)
    if context_parts:
        error_msg += " | " + " | ".join(context_parts)

    if log_level.lower() == "critical":
        logger.critical(error_msg, exc_info=error)
    elif log_level.lower() == "warning":
        logger.warning(error_msg, exc_info=error)
    else:
        logger.error(error_msg, exc_info=error)

    return error_msg
