"""Custom exceptions for the Kebo back-office core.

The core degrades to placeholder values instead of failing on bad data, so
these exceptions are mostly raised and caught inside the package: a mapper
raises RecordMappingError for a record it cannot read, and the collection
level callers (index builder, report builder) skip that record and log it.

Example:
    try:
        sale = map_sale(raw)
    except RecordMappingError as e:
        logger.warning("sale_skipped", **e.details)
"""

from typing import Any, Optional


class KeboError(Exception):
    """Base exception for all Kebo core errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the caller can continue past the error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class RecordMappingError(KeboError):
    """Error raised when a raw source record cannot be mapped.

    Raised at the system boundary when a document is not a mapping or
    lacks every field that identifies it. Always recoverable: the record
    is dropped and the rest of the collection is processed.

    Attributes:
        record_type: Kind of record being mapped (sale, expense, customer...).
        record_id: Identifier of the offending record, when known.
        field: The field that made the record unusable, if any.

    Example:
        >>> raise RecordMappingError(
        ...     "Vehicle has no chassis, plate or renavam",
        ...     record_type="vehicle",
        ...     record_id="m42",
        ... )
        RecordMappingError: Vehicle has no chassis, plate or renavam
    """

    def __init__(
        self,
        message: str,
        *,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.record_type = record_type
        self.record_id = record_id
        self.field = field

        if record_type:
            self.details["record_type"] = record_type
        if record_id:
            self.details["record_id"] = record_id
        if field:
            self.details["field"] = field


__all__ = [
    "KeboError",
    "RecordMappingError",
]
