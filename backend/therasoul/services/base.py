# backend/therasoul/services/base.py
"""
Base Service Pattern for the TheraSoul platform

Provides common functionality for all service classes including:
- Logging with operation context
- Performance monitoring (Prometheus histograms and slow-operation warnings)

Units of work are owned by the repositories' ``transaction()``.
"""

from functools import wraps
import logging
import time
from typing import Any, Callable, TypeVar, cast

from sqlalchemy.orm import Session

from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

SLOW_OPERATION_SECONDS = 1.0

F = TypeVar("F", bound=Callable[..., Any])


class BaseService:
    """Base class for all service layer components."""

    def __init__(self, db: Session):
        """
        Initialize base service.

        Args:
            db: Database session
        """
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_session")
            def create_session(self, ...):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                start_time = time.time()
                success = False
                error_type = None

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - start_time
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    try:
                        prometheus_metrics.record_service_operation(
                            service=self.__class__.__name__,
                            operation=operation_name,
                            duration=elapsed,
                            status="success" if success else "error",
                            error_type=error_type,
                        )
                    except Exception:
                        # Don't let metrics collection break the operation
                        self.logger.debug("Failed to record metrics for %s", operation_name)

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log an operation with context.

        Args:
            operation: Operation name
            **context: Additional context to log
        """
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})
