"""Error taxonomy for connect / observe / create / update / delete.

A remote NOT_FOUND on observe is not an error: it is reported as
``resource_exists=False``.
"""

from __future__ import annotations


class CachectlError(Exception):
    """Base class for every error raised by the engine."""


class TypeMismatchError(CachectlError):
    """The managed resource handed in is not the kind this client manages."""


class ConnectError(CachectlError):
    """Credentials or the API client could not be resolved for a resource."""


class UnknownKindError(CachectlError):
    """A stored resource names a kind no model is registered for."""


class OperationCancelled(CachectlError):
    """The caller's context was cancelled or its deadline passed."""


class ExternalCallError(CachectlError):
    """A remote call failed for a reason other than NOT_FOUND.

    The message is ``"<prefix>: <cause>"`` and the original exception is
    kept on ``cause`` (and chained as ``__cause__`` by the raiser).
    """

    prefix = "remote call failed"

    def __init__(self, cause: BaseException):
        super().__init__(f"{self.prefix}: {cause}")
        self.cause = cause


class ObserveError(ExternalCallError):
    prefix = "cannot get CloudMemorystore instance"


class CreateError(ExternalCallError):
    prefix = "cannot create CloudMemorystore instance"


class UpdateError(ExternalCallError):
    prefix = "cannot update CloudMemorystore instance"


class DeleteError(ExternalCallError):
    prefix = "cannot delete CloudMemorystore instance"
