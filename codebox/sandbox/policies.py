"""Sandbox isolation policies.

Defines the declarative policy that controls what a sandboxed snippet can
access. A policy bundles three independent sub-policies (filesystem,
network, process) plus free-form metadata that travels with audit logs.

Policies are immutable after creation. Documents use camelCase keys
(``maxTotalMb``, ``timeoutMs``); Python code uses the snake_case attributes.
"""

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel


class MountKind(StrEnum):
    """Well-known mount kinds. Other runtime-specific kinds are accepted as strings."""

    BIND = "bind"
    TMPFS = "tmpfs"


# Mount kinds materialized by the runtime itself, with no host-side source
EPHEMERAL_MOUNT_KINDS = frozenset({MountKind.TMPFS.value})

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"]
NetworkProtocol = Literal["http", "https"]
MetadataValue = str | int | float | bool

# Policy scalars are never coerced: "0" is not a uid and "no" is not a boolean.
# StrictFloat still accepts ints, so `cpuQuota: 1` is valid.
PositiveNumber = Annotated[StrictFloat, Field(gt=0)]
PositiveCount = Annotated[StrictInt, Field(gt=0)]
NonNegativeCount = Annotated[StrictInt, Field(ge=0)]

_URL_ADAPTER = TypeAdapter(AnyUrl)


class PolicyModel(BaseModel):
    """Base for policy models: frozen, camelCase aliases, no unknown keys."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to a JSON/YAML-ready document with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# FILESYSTEM
# =============================================================================


class Mount(PolicyModel):
    """A filesystem path exposed to the sandbox.

    ``source`` is optional because ephemeral mounts (tmpfs) are created by
    the runtime. Non-ephemeral mounts must have a source by the time they are
    resolved; relative sources are resolved against the workspace root.
    """

    source: str | None = Field(default=None, min_length=1, description="Host path")
    target: str = Field(..., min_length=1, description="Path inside the sandbox")
    writable: StrictBool = Field(..., description="Whether the mount is writable")
    kind: str = Field(
        default=MountKind.BIND.value,
        min_length=1,
        alias="type",
        description="Mount kind (bind, tmpfs, or a runtime-specific kind)",
    )

    @property
    def is_ephemeral(self) -> bool:
        return self.kind in EPHEMERAL_MOUNT_KINDS


class ResolvedMount(Mount):
    """A mount with its absolute host path filled in by the mount resolver."""

    resolved_source: str | None = Field(default=None, description="Absolute host path")


class FilesystemPolicy(PolicyModel):
    """Explicitly allowed mounts; nothing else from the host is visible."""

    mounts: list[Mount] = Field(
        ...,
        min_length=1,
        description="Ordered mounts (at least one is required)",
    )
    deny_globs: list[str] = Field(
        default_factory=list,
        description="Glob patterns that must remain inaccessible",
    )
    max_total_mb: PositiveNumber | None = Field(default=None, description="Total storage cap")

    @field_validator("deny_globs")
    @classmethod
    def _non_empty_globs(cls, value: list[str]) -> list[str]:
        if any(not pattern for pattern in value):
            raise ValueError("deny globs must be non-empty strings")
        return value


# =============================================================================
# NETWORK
# =============================================================================


class NetworkAllowlistRule(PolicyModel):
    """Advisory allowlist entry handed to the runtime/proxy layer."""

    host: str = Field(..., min_length=1, description="Host name or address")
    ports: list[PositiveCount] | None = None
    methods: list[HttpMethod] | None = None
    protocols: list[NetworkProtocol] | None = None


class NetworkProxy(PolicyModel):
    """Allowlist-enforcing proxy the sandbox traffic is routed through."""

    url: str = Field(..., description="Proxy URL")
    required: StrictBool = True

    @field_validator("url")
    @classmethod
    def _well_formed_url(cls, value: str) -> str:
        try:
            _URL_ADAPTER.validate_python(value)
        except ValidationError:
            raise ValueError("must be a well-formed URL") from None
        return value


class NetworkPolicy(PolicyModel):
    """Network access policy. Disabled means fully isolated."""

    enabled: StrictBool = False
    allowlist: list[NetworkAllowlistRule] = Field(default_factory=list)
    proxy: NetworkProxy | None = None


# =============================================================================
# PROCESS
# =============================================================================


class ProcessPolicy(PolicyModel):
    """Process and resource limits."""

    cpu_quota: PositiveNumber | None = Field(default=None, description="Fractional cores")
    memory_mb: PositiveNumber | None = Field(default=None, description="Memory cap in MB")
    timeout_ms: PositiveCount | None = Field(default=None, description="Wall-clock timeout")
    uid: NonNegativeCount | None = None
    gid: NonNegativeCount | None = None
    max_child_processes: NonNegativeCount | None = Field(
        default=None,
        description="Additional processes allowed besides the snippet itself",
    )
    env: dict[str, str] = Field(default_factory=dict)
    workdir: str | None = Field(default=None, min_length=1)


class SandboxPolicy(PolicyModel):
    """Complete sandbox policy for one execution."""

    fs: FilesystemPolicy
    net: NetworkPolicy
    proc: ProcessPolicy
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)


# =============================================================================
# OVERRIDES
# =============================================================================


class FilesystemPolicyOverrides(PolicyModel):
    mounts: list[Mount] | None = Field(default=None, min_length=1)
    deny_globs: list[str] | None = None
    max_total_mb: PositiveNumber | None = None


class NetworkPolicyOverrides(PolicyModel):
    enabled: StrictBool | None = None
    allowlist: list[NetworkAllowlistRule] | None = None
    proxy: NetworkProxy | None = None


class ProcessPolicyOverrides(PolicyModel):
    cpu_quota: PositiveNumber | None = None
    memory_mb: PositiveNumber | None = None
    timeout_ms: PositiveCount | None = None
    uid: NonNegativeCount | None = None
    gid: NonNegativeCount | None = None
    max_child_processes: NonNegativeCount | None = None
    env: dict[str, str] | None = None
    workdir: str | None = Field(default=None, min_length=1)


class SandboxPolicyOverrides(PolicyModel):
    """Partial policy used only as merge input.

    Every field is optional; ``None`` means "keep the base value".
    """

    fs: FilesystemPolicyOverrides | None = None
    net: NetworkPolicyOverrides | None = None
    proc: ProcessPolicyOverrides | None = None
    metadata: dict[str, MetadataValue] | None = None


# =============================================================================
# DEFAULT POLICY
# =============================================================================


def get_default_policy() -> SandboxPolicy:
    """Least-privilege baseline used when no policy file exists.

    Network is disabled, the workspace is the only writable bind mount,
    dependencies are read-only, and the snippet runs as a non-root user.

    Returns:
        A fresh SandboxPolicy on every call
    """
    return SandboxPolicy(
        fs=FilesystemPolicy(
            mounts=[
                Mount(source="./workspace", target="/workspace", writable=True, kind="bind"),
                Mount(source="./deps", target="/deps", writable=False, kind="bind"),
                Mount(target="/tmp", writable=True, kind="tmpfs"),  # nosec B108
            ],
            deny_globs=["**/.env", "**/.ssh/**", "**/id_*", "/home/**"],
            max_total_mb=512,
        ),
        net=NetworkPolicy(enabled=False, allowlist=[]),
        proc=ProcessPolicy(
            cpu_quota=1,
            memory_mb=512,
            timeout_ms=60_000,
            uid=1000,
            gid=1000,
            max_child_processes=1,
            env={},
        ),
        metadata={"source": "default/local"},
    )


__all__ = [
    "EPHEMERAL_MOUNT_KINDS",
    "FilesystemPolicy",
    "FilesystemPolicyOverrides",
    "Mount",
    "MountKind",
    "NetworkAllowlistRule",
    "NetworkPolicy",
    "NetworkPolicyOverrides",
    "NetworkProxy",
    "PolicyModel",
    "ProcessPolicy",
    "ProcessPolicyOverrides",
    "ResolvedMount",
    "SandboxPolicy",
    "SandboxPolicyOverrides",
    "get_default_policy",
]
