class BadRequestError(Exception):
    """Exception raised for bad requests.

    NOTE: throwing this will result in a 400 response with the given error message.
    """

    def __init__(self, message):
        super().__init__(message)
        self.message = message

class MediaRuntimeError(Exception):
    """Base exception with context"""
    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self):
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{super().__str__()} ({context_str})"
        return super().__str__()

## Collection mutation errors, raised client side. The collection is never left half mutated.

class CollectionError(MediaRuntimeError): ...

class CapacityExceeded(CollectionError): ...

class OutOfRange(CollectionError): ...

class DuplicateIdentity(CollectionError): ...

class UnsupportedContentType(CollectionError): ...

## Encoding / decoding errors

class TransferError(MediaRuntimeError): ...

class UnreadableSource(TransferError): ...

class DecodeError(TransferError): ...

class MalformedPayload(TransferError): ...

## Reconciliation errors. Storage is unchanged when one of these is raised.

class ReconcileError(MediaRuntimeError): ...

class DuplicateOrder(ReconcileError): ...

class UnknownReference(ReconcileError): ...

class SubmitError(MediaRuntimeError):
    """Raised by the client when the server rejects or fails a submit.

    status is None when no response was received.
    """
    def __init__(self, message: str, status: int | None = None, error: str | None = None, **context):
        super().__init__(message, status=status, error=error, **context)
        self.status = status
        self.error = error
