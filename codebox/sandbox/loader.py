"""Policy loading and merging.

Policies are built fresh for every execution request:
defaults -> file-loaded policy -> caller overrides -> per-call overrides.
Each step returns a new value and never mutates its inputs.

Sequence fields (mounts, deny globs, allowlist) are replaced wholesale
rather than concatenated so a partial override can never retain a stale
entry the caller meant to remove.
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

from codebox.exceptions import PolicyLoadError, PolicyMissingError, PolicyValidationError
from codebox.sandbox.policies import (
    FilesystemPolicy,
    FilesystemPolicyOverrides,
    NetworkPolicy,
    NetworkPolicyOverrides,
    ProcessPolicy,
    ProcessPolicyOverrides,
    SandboxPolicy,
    SandboxPolicyOverrides,
    get_default_policy,
)
from codebox.sandbox.validation import validate_policy
from codebox.settings import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# MERGE
# =============================================================================


def _scalar_updates(overrides: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    return {name: getattr(overrides, name) for name in fields if getattr(overrides, name) is not None}


def _merge_fs(base: FilesystemPolicy, overrides: FilesystemPolicyOverrides | None) -> FilesystemPolicy:
    update: dict[str, Any] = {}
    if overrides is not None:
        update.update(_scalar_updates(overrides, ("max_total_mb",)))
        if overrides.mounts is not None:
            update["mounts"] = copy.deepcopy(overrides.mounts)
        if overrides.deny_globs is not None:
            update["deny_globs"] = list(overrides.deny_globs)
    return base.model_copy(update=update, deep=True)


def _merge_net(base: NetworkPolicy, overrides: NetworkPolicyOverrides | None) -> NetworkPolicy:
    update: dict[str, Any] = {}
    if overrides is not None:
        update.update(_scalar_updates(overrides, ("enabled",)))
        if overrides.allowlist is not None:
            update["allowlist"] = copy.deepcopy(overrides.allowlist)
        if overrides.proxy is not None:
            update["proxy"] = copy.deepcopy(overrides.proxy)
    return base.model_copy(update=update, deep=True)


def _merge_proc(base: ProcessPolicy, overrides: ProcessPolicyOverrides | None) -> ProcessPolicy:
    update: dict[str, Any] = {}
    if overrides is not None:
        update.update(
            _scalar_updates(
                overrides,
                ("cpu_quota", "memory_mb", "timeout_ms", "uid", "gid", "max_child_processes", "workdir"),
            )
        )
        if overrides.env is not None:
            update["env"] = {**base.env, **overrides.env}
    return base.model_copy(update=update, deep=True)


def merge_policy(
    base: SandboxPolicy,
    overrides: SandboxPolicyOverrides | None = None,
) -> SandboxPolicy:
    """Combine a base policy with partial overrides.

    Pure and allocation-fresh: the result never shares a list or dict with
    ``base`` or ``overrides``.

    Args:
        base: Complete policy
        overrides: Partial policy; ``None`` fields keep the base value

    Returns:
        New SandboxPolicy (a deep copy of ``base`` when there are no overrides)
    """
    if overrides is None:
        return base.model_copy(deep=True)

    metadata = dict(base.metadata)
    if overrides.metadata is not None:
        metadata.update(overrides.metadata)

    return SandboxPolicy(
        fs=_merge_fs(base.fs, overrides.fs),
        net=_merge_net(base.net, overrides.net),
        proc=_merge_proc(base.proc, overrides.proc),
        metadata=metadata,
    )


# =============================================================================
# LOAD
# =============================================================================


def _read_policy_document(path: Path) -> Any:
    """Read and parse a YAML policy file.

    Raises:
        PolicyMissingError: If the file does not exist
        PolicyLoadError: If the file cannot be read or parsed
    """
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise PolicyMissingError(str(path)) from None
    except OSError as e:
        raise PolicyLoadError(f"Cannot read policy file {path}: {e}", path=str(path)) from e

    try:
        return yaml.safe_load(contents)
    except yaml.YAMLError as e:
        raise PolicyLoadError(f"Cannot parse policy file {path}: {e}", path=str(path)) from e


def load_policy(
    file: str | Path | None = None,
    cwd: str | Path | None = None,
    overrides: SandboxPolicyOverrides | None = None,
) -> SandboxPolicy:
    """Load the sandbox policy from a YAML file, falling back to defaults.

    Args:
        file: Policy file path (default: settings.sandbox_policy_file).
            Relative paths resolve against ``cwd``.
        cwd: Directory for relative paths (default: process working directory)
        overrides: Optional overrides merged after the file/defaults

    Returns:
        Effective SandboxPolicy

    Raises:
        PolicyLoadError: If the file exists but is unreadable, unparsable,
            or fails validation
    """
    file = file if file is not None else get_settings().sandbox_policy_file
    path = Path(file)
    if not path.is_absolute():
        path = Path(cwd if cwd is not None else Path.cwd()) / path

    try:
        document = _read_policy_document(path)
        base = validate_policy(document)
        logger.debug("Loaded sandbox policy from %s", path)
    except PolicyMissingError:
        logger.debug("No policy file at %s, using default policy", path)
        base = get_default_policy()
    except PolicyValidationError as e:
        raise PolicyLoadError(f"Invalid policy file {path}: {e}", path=str(path)) from e

    return merge_policy(base, overrides)


__all__ = ["load_policy", "merge_policy"]
