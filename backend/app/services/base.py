# backend/app/services/base.py
"""
Base Service for the coaching platform.

Every service (scheduler, booking state machine, catalog, subscriptions)
inherits from BaseService and gets:
- transaction(): one unit of work, committed or rolled back as a whole
- measure_operation: timing, success/failure stats and Prometheus export
- log_operation: domain events as structured log records
"""

from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


@dataclass
class OperationStats:
    """Running timings for one measured operation of one service class."""

    count: int = 0
    failures: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)
        if not success:
            self.failures += 1

    def summary(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg_time": self.total_time / self.count,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "success_rate": (self.count - self.failures) / self.count,
            "failure_count": self.failures,
        }


class BaseService:
    """
    Base class for service layer components.

    Services own transaction boundaries; repositories below them only
    flush.
    """

    # Per-class operation stats, shared by all instances of a service class
    _class_metrics: Dict[str, Dict[str, OperationStats]] = {}

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run the block as one unit of work.

        Usage:
            with self.transaction():
                self.session_repository.create(...)

        Domain exceptions raised inside the block roll back and propagate
        unchanged. SQLAlchemy errors roll back and surface as
        ServiceException.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator timing a service method.

        Usage:
            @BaseService.measure_operation("approve_booking")
            def approve_booking(self, booking_id, coach_id):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                started = time.time()
                error_type = None

                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - started
                    success = error_type is None
                    self._record_metric(operation_name, elapsed, success)

                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            wrapper._operation_name = operation_name  # type: ignore[attr-defined]
            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log a domain event (e.g. "booking.approved") with structured context."""
        self.logger.info(operation, extra={"event": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        stats = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        stats.setdefault(operation, OperationStats()).add(elapsed, success)

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """Summary per measured operation of this service class."""
        stats = BaseService._class_metrics.get(self.__class__.__name__, {})
        return {name: entry.summary() for name, entry in stats.items() if entry.count}
