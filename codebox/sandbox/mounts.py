"""Mount resolution.

Turns declared mounts into ResolvedMounts with absolute, existing host
directories. Ephemeral mounts (tmpfs) and source-less mounts pass through.
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from codebox.exceptions import MountResolutionError
from codebox.sandbox.policies import Mount, ResolvedMount

logger = logging.getLogger(__name__)


def resolve_source(source: str, workspace_root: str | Path) -> str:
    """Absolute host path for a mount source.

    Absolute sources are returned unchanged; relative sources are joined
    onto ``workspace_root`` and normalised (symlinks are not followed).
    """
    if os.path.isabs(source):
        return source
    return os.path.abspath(os.path.join(workspace_root, source))


def ensure_directory(path: str) -> None:
    """Create ``path`` and any missing parents. An existing path is fine."""
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except FileExistsError:
        # Exists as a non-directory; the runtime decides whether it can be mounted
        pass


def resolve_mounts(mounts: Iterable[Mount], workspace_root: str | Path) -> list[ResolvedMount]:
    """Resolve declared mounts against the workspace root.

    Args:
        mounts: Declared mounts, in policy order
        workspace_root: Directory that relative sources resolve against

    Returns:
        ResolvedMounts in the same order

    Raises:
        MountResolutionError: If a source directory cannot be created
    """
    resolved: list[ResolvedMount] = []
    for mount in mounts:
        fields = {name: getattr(mount, name) for name in Mount.model_fields}
        if mount.is_ephemeral or not mount.source:
            resolved.append(ResolvedMount(**fields))
            continue

        source = resolve_source(mount.source, workspace_root)
        try:
            ensure_directory(source)
        except OSError as e:
            raise MountResolutionError(
                f"Cannot create mount source {source} for {mount.target}: {e}",
                target=mount.target,
                source=source,
            ) from e

        logger.debug("Resolved mount %s -> %s", mount.target, source)
        resolved.append(ResolvedMount(**fields, resolved_source=source))
    return resolved


__all__ = ["ensure_directory", "resolve_mounts", "resolve_source"]
