"""Custom exceptions for the ShroomTrack ledger."""

class LedgerError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class ValidationError(LedgerError):
    """Bad input shape: empty cart, unset customer, non-positive quantity."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)

class NotFoundError(LedgerError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class TransitionError(LedgerError):
    """Raised when a sales record is asked to move to a status it cannot reach."""
    def __init__(self, current_status, requested_status):
        self.current_status = current_status
        self.requested_status = requested_status
        message = f"Cannot move sales record from {current_status} to {requested_status}"
        super().__init__(message, 409, {
            'current_status': current_status,
            'requested_status': requested_status,
        })

class InsufficientStockError(LedgerError):
    """Raised when finished-goods stock cannot cover every line being reserved."""
    def __init__(self, shortfalls):
        self.shortfalls = list(shortfalls)
        parts = []
        for item in self.shortfalls:
            parts.append(
                f"{item['product_label']}: requested {_fmt_qty(item['requested'])}, "
                f"available {_fmt_qty(item['available'])}, short {_fmt_qty(item['shortfall'])}"
            )
        message = "Insufficient stock for " + "; ".join(parts)
        super().__init__(message, 409, {'shortfalls': [_jsonable(s) for s in self.shortfalls]})

class PersistenceError(LedgerError):
    """Read or write failure in the persistence layer, surfaced verbatim."""
    def __init__(self, message="Persistence failure", status_code=503, payload=None):
        super().__init__(message, status_code, payload)

class StaleRecordError(PersistenceError):
    """Raised when a write is based on a version of the record that is no longer current."""
    def __init__(self, record_id):
        self.record_id = record_id
        super().__init__(
            f"Sales record {record_id} was modified concurrently; reload and retry",
            409,
            {'record_id': record_id}
        )


class DocumentUnavailableError(LedgerError):
    """Raised when a document type cannot be viewed for the record's current status."""
    def __init__(self, document_type, status):
        self.document_type = document_type
        self.status = status
        super().__init__(
            f"{document_type} is not available for a sales record in status {status}",
            409,
            {'document_type': document_type, 'current_status': status}
        )


def _fmt_qty(value):
    return f"{int(value)}" if value % 1 == 0 else f"{value:.2f}".rstrip('0').rstrip('.')


def _jsonable(shortfall):
    return {k: (float(v) if k in ('requested', 'available', 'shortfall') else v) for k, v in shortfall.items()}
