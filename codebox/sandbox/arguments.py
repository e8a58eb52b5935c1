"""Container runtime argument builder.

Translates a SandboxPolicy plus resolved mounts into ``docker run``
arguments. Kept free of I/O so the exact flag ordering can be unit tested
without a container runtime.
"""

from collections.abc import Sequence

from codebox.exceptions import ArgumentContractError
from codebox.sandbox.policies import ResolvedMount, SandboxPolicy


def _format_number(value: float) -> str:
    """Plain decimal, with no trailing `.0` for whole values."""
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def mount_flag(mount: ResolvedMount) -> str:
    """Serialize a resolved mount as a ``--mount`` value.

    Raises:
        ArgumentContractError: If a non-ephemeral mount has no resolved source
    """
    parts = [f"type={mount.kind}", f"target={mount.target}"]
    if not mount.is_ephemeral:
        if not mount.resolved_source:
            raise ArgumentContractError(mount.target)
        parts.append(f"source={mount.resolved_source}")
    if not mount.writable:
        parts.append("readonly")
    return ",".join(parts)


def build_run_args(
    image: str,
    policy: SandboxPolicy,
    mounts: Sequence[ResolvedMount],
    command: Sequence[str] | None = None,
) -> list[str]:
    """Build the argument list for a run-once, auto-removed container.

    The runtime binary itself is not included.

    Args:
        image: Container image reference
        policy: Effective policy
        mounts: Resolved mounts, in policy order
        command: Command vector; the image entrypoint is used when omitted

    Returns:
        Ordered list of runtime CLI arguments
    """
    args: list[str] = ["run", "--rm"]

    # Network: bridge or nothing, there is no partial isolation
    args.extend(["--network", "bridge" if policy.net.enabled else "none"])

    # Resource limits
    proc = policy.proc
    if proc.cpu_quota is not None:
        args.extend(["--cpus", _format_number(proc.cpu_quota)])
    if proc.memory_mb is not None:
        args.extend(["--memory", f"{_format_number(proc.memory_mb)}m"])
    if proc.max_child_processes is not None:
        # One slot is reserved for the snippet process itself
        args.extend(["--pids-limit", str(max(1, proc.max_child_processes + 1))])

    # Identity
    if proc.uid is not None or proc.gid is not None:
        uid = proc.uid if proc.uid is not None else 0
        gid = proc.gid if proc.gid is not None else uid
        args.extend(["--user", f"{uid}:{gid}"])

    if proc.workdir:
        args.extend(["--workdir", proc.workdir])

    for key, value in proc.env.items():
        args.extend(["--env", f"{key}={value}"])

    for mount in mounts:
        args.extend(["--mount", mount_flag(mount)])

    args.append(image)

    if command:
        args.extend(command)

    return args


__all__ = ["build_run_args", "mount_flag"]
