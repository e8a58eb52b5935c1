"""Structural and semantic validation of policy documents.

Turns an untyped document (typically parsed YAML or tool input) into a
typed policy, or raises PolicyValidationError naming the offending field.
Validation never fills in missing sections; defaulting is the merger's job.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from codebox.exceptions import PolicyValidationError
from codebox.sandbox.policies import PolicyModel, SandboxPolicy, SandboxPolicyOverrides

_ModelT = TypeVar("_ModelT", bound=PolicyModel)

ROOT_FIELD = "policy"


def _field_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or ROOT_FIELD


def _validate(model: type[_ModelT], document: Any) -> _ModelT:
    if isinstance(document, model):
        return document
    if not isinstance(document, Mapping):
        raise PolicyValidationError(
            ROOT_FIELD,
            f"document must be a mapping, got {type(document).__name__}",
        )

    try:
        return model.model_validate(dict(document))
    except ValidationError as exc:
        first = exc.errors()[0]
        constraint = first["msg"]
        if exc.error_count() > 1:
            constraint = f"{constraint} (and {exc.error_count() - 1} more error(s))"
        raise PolicyValidationError(_field_path(first["loc"]), constraint) from exc


def validate_policy(document: Any) -> SandboxPolicy:
    """Validate a policy document.

    Args:
        document: Mapping with ``fs``, ``net`` and ``proc`` sections and
            optional ``metadata``

    Returns:
        Typed SandboxPolicy

    Raises:
        PolicyValidationError: If a section is missing or a constraint fails
    """
    return _validate(SandboxPolicy, document)


def validate_overrides(document: Any) -> SandboxPolicyOverrides:
    """Validate a partial policy document used as merge input.

    Raises:
        PolicyValidationError: If a present field violates its constraint
    """
    return _validate(SandboxPolicyOverrides, document)


__all__ = ["validate_overrides", "validate_policy"]
