"""Helpers that build MongoDB update commands."""

from collections.abc import Iterable

from .errors import NoFieldsToUpdateError
from .utils import flatten


def get_update_doc_command(
    document: dict[str, object],
    include_fields: Iterable[str] | None = None,
    exclude_fields: Iterable[str] = (),
) -> dict[str, object]:
    """
    Build a ``$set`` command from a (possibly nested) document.

    Args:
        document: Document content as dumped from the model
        include_fields: When given, only keys starting with one of these
            prefixes are kept
        exclude_fields: Keys that must never be written by clients

    Returns:
        Update command

    Raises:
        NoFieldsToUpdateError: If nothing is left to update

    """
    fields = flatten(document)
    for name in exclude_fields:
        fields.pop(name, None)
    include = list(include_fields or [])
    if include:
        fields = {
            key: value
            for key, value in fields.items()
            if any(key.startswith(prefix) for prefix in include)
        }
    if not fields:
        raise NoFieldsToUpdateError()
    return {"$set": fields}


def get_add_to_set_command(array_field: str, *values: object) -> dict[str, object]:
    if len(values) == 1:
        return {"$addToSet": {array_field: values[0]}}
    return {"$addToSet": {array_field: {"$each": list(values)}}}


def get_pull_command(array_field: str, *values: object) -> dict[str, object]:
    return {"$pull": {array_field: {"$in": list(values)}}}


def get_set_field_command(field_name: str, value: object) -> dict[str, object]:
    return {"$set": {field_name: value}}


def get_unset_field_command(field_name: str) -> dict[str, object]:
    return {"$unset": {field_name: ""}}
