"""Custom exceptions for repository store operations."""


class RepositoryError(Exception):
    """Base exception for repository store errors."""
    pass


class StoreConnectionError(RepositoryError):
    """Error connecting to the repository store."""
    pass


class SchemaError(RepositoryError):
    """Error related to store schema."""
    pass


class StoreRejectedError(RepositoryError):
    """The store refused an object or datastream."""

    def __init__(self, pid: str, reason: str, dsid: str = None):
        self.pid = pid
        self.dsid = dsid
        self.reason = reason
        target = f"{dsid} on '{pid}'" if dsid else f"'{pid}'"
        super().__init__(f"Store rejected {target}: {reason}")


class IdentifierAllocationError(RepositoryError):
    """Identifiers could not be allocated for a namespace."""

    def __init__(self, namespace: str, reason: str = ""):
        self.namespace = namespace
        msg = f"Could not allocate identifiers in namespace '{namespace}'"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)
