"""Sandbox infrastructure for isolated snippet execution.

A declarative SandboxPolicy (filesystem, network, process limits) is
validated, merged with overrides, and translated into a single
run-and-remove invocation of a Docker-CLI compatible runtime.
"""

from codebox.sandbox.arguments import build_run_args
from codebox.sandbox.loader import load_policy, merge_policy
from codebox.sandbox.mounts import resolve_mounts
from codebox.sandbox.output import BoundedOutput
from codebox.sandbox.policies import (
    FilesystemPolicy,
    Mount,
    NetworkAllowlistRule,
    NetworkPolicy,
    NetworkProxy,
    ProcessPolicy,
    ResolvedMount,
    SandboxPolicy,
    SandboxPolicyOverrides,
    get_default_policy,
)
from codebox.sandbox.runner import (
    LocalContainerRunner,
    ResourceUsage,
    RunnerConfig,
    SandboxResult,
    SandboxRunner,
    run_snippet,
)
from codebox.sandbox.validation import validate_overrides, validate_policy

__all__ = [
    # Policies
    "FilesystemPolicy",
    "Mount",
    "NetworkAllowlistRule",
    "NetworkPolicy",
    "NetworkProxy",
    "ProcessPolicy",
    "ResolvedMount",
    "SandboxPolicy",
    "SandboxPolicyOverrides",
    "get_default_policy",
    "load_policy",
    "merge_policy",
    "validate_overrides",
    "validate_policy",
    # Execution
    "BoundedOutput",
    "LocalContainerRunner",
    "ResourceUsage",
    "RunnerConfig",
    "SandboxResult",
    "SandboxRunner",
    "build_run_args",
    "resolve_mounts",
    "run_snippet",
]
