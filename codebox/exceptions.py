"""Codebox exception hierarchy.

Base exceptions for all layers with correlation ID support.

Usage:
    from codebox.exceptions import PolicyLoadError, SandboxError

    try:
        result = await runner.exec(code, policy)
    except SandboxError as e:
        logger.error("Sandbox failed (%s): %s", e.correlation_id, e)
"""

import uuid


class CodeboxError(Exception):
    """Base exception for all codebox errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


# =============================================================================
# POLICY
# =============================================================================


class PolicyError(CodeboxError):
    """Errors from loading or validating sandbox policies."""

    pass


class PolicyValidationError(PolicyError):
    """A policy document violates a structural or semantic constraint.

    Attributes:
        field: Dotted path of the offending field (e.g. ``fs.mounts``)
        constraint: Human-readable description of the violated constraint
    """

    def __init__(self, field: str, constraint: str, **kwargs):
        self.field = field
        self.constraint = constraint
        super().__init__(f"Invalid policy field '{field}': {constraint}", **kwargs)


class PolicyLoadError(PolicyError):
    """A policy file exists but could not be read, parsed, or validated."""

    def __init__(self, message: str, *, path: str | None = None, **kwargs):
        self.path = path
        super().__init__(message, **kwargs)


class PolicyMissingError(PolicyError):
    """The policy file does not exist; callers fall back to defaults."""

    def __init__(self, path: str, **kwargs):
        self.path = path
        super().__init__(f"Policy file not found: {path}", **kwargs)


# =============================================================================
# SANDBOX EXECUTION
# =============================================================================


class SandboxError(CodeboxError):
    """Errors from sandbox script execution."""

    def __init__(self, message: str, *, timeout: bool = False, **kwargs):
        self.timeout = timeout
        super().__init__(message, **kwargs)


class StagingError(SandboxError):
    """The snippet could not be written to the private staging directory."""

    pass


class MountResolutionError(SandboxError):
    """A mount source directory could not be created."""

    def __init__(self, message: str, *, target: str, source: str | None = None, **kwargs):
        self.target = target
        self.source = source
        super().__init__(message, **kwargs)


class ArgumentContractError(SandboxError):
    """A non-ephemeral mount reached argument building without a resolved source."""

    def __init__(self, target: str, **kwargs):
        self.target = target
        super().__init__(f"Mount for target {target} is missing a resolved source path", **kwargs)


class RuntimeSpawnError(SandboxError):
    """The container runtime binary could not be launched."""

    def __init__(self, message: str, *, binary: str, **kwargs):
        self.binary = binary
        super().__init__(message, **kwargs)
