"""Typed errors raised by the document store layer."""


class NoFieldsToUpdateError(ValueError):
    """An update command reduced to an empty set of fields."""

    def __init__(self) -> None:
        super().__init__("no fields to update")


class ContextError(RuntimeError):
    """The request context lacks the collection or the tenant."""


class UnknownTemplateError(KeyError):
    """No aggregation template is registered under the requested name."""


class TenantPurgeError(RuntimeError):
    """
    One or more collections failed while purging tenant documents.

    Attributes:
        deleted: Number of documents deleted before and despite the failures
        errors: Per-collection failures

    """

    def __init__(self, deleted: int, errors: dict[str, Exception]) -> None:
        self.deleted = deleted
        self.errors = errors
        names = ", ".join(sorted(errors))
        super().__init__(f"failed to purge tenant documents in: {names}")
