"""Local container runner.

Executes shell snippets in throwaway containers through a Docker-CLI
compatible runtime (docker, podman). One execution:

    Staging -> Resolving -> Launching -> Running -> (Completed | TimedOut | Failed) -> Cleaned

The staging directory is removed on every path, including timeouts and
spawn failures.
"""

import asyncio
import logging
import os
import shutil
import signal
import tempfile
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from codebox.exceptions import RuntimeSpawnError, StagingError
from codebox.sandbox.arguments import build_run_args
from codebox.sandbox.loader import load_policy
from codebox.sandbox.mounts import resolve_mounts
from codebox.sandbox.output import BoundedOutput, drain
from codebox.sandbox.policies import MountKind, ResolvedMount, SandboxPolicy
from codebox.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SCRIPT_NAME = "snippet.sh"
CONTAINER_SCRIPT_PATH = "/sandbox/snippet.sh"
SCRIPT_MODE = 0o700

# How long drains may keep reading after the process is gone
_DRAIN_GRACE_SECONDS = 1.0


class ResultModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResourceUsage(ResultModel):
    """Resource counters for one execution."""

    wall_time_ms: int = Field(..., ge=0, description="Wall-clock duration")
    cpu_time_ms: int | None = None
    memory_peak_mb: float | None = None
    bytes_read: int | None = None
    bytes_written: int | None = None


class SandboxResult(ResultModel):
    """Result of a sandboxed snippet execution."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    stdout: str = Field(default="", description="Standard output (possibly truncated)")
    stderr: str = Field(default="", description="Standard error (possibly truncated)")
    exit_code: int | None = Field(
        ...,
        description="Process exit code; None when the process was force-terminated",
    )
    effective_policy: SandboxPolicy = Field(..., description="Policy applied to the run")
    resource_usage: ResourceUsage
    output_truncated: bool = Field(default=False, description="Whether any stream was truncated")
    timed_out: bool = Field(default=False, description="Whether the deadline was reached")
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


@runtime_checkable
class SandboxRunner(Protocol):
    """Anything that can execute a snippet under a policy.

    Concrete runners (local container runtime, remote service, ...) only
    need to implement ``exec``; policy and argument logic stay shared.
    """

    async def exec(self, code: str, policy: SandboxPolicy) -> SandboxResult: ...


class RunnerConfig(BaseModel):
    """Process-wide runner defaults, resolved once at construction."""

    model_config = ConfigDict(frozen=True)

    image: str = "codebox-sandbox:latest"
    runtime_binary: str = "docker"
    workspace_root: Path = Field(default_factory=Path.cwd)
    temp_dir: Path | None = None
    max_output_bytes: int = Field(default=512 * 1024, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "RunnerConfig":
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "image": settings.sandbox_image,
            "runtime_binary": settings.sandbox_runtime,
            "workspace_root": settings.sandbox_workspace_root or Path.cwd(),
            "temp_dir": settings.sandbox_temp_dir,
            "max_output_bytes": settings.sandbox_max_output_bytes,
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class _ProcessOutcome:
    stdout: BoundedOutput
    stderr: BoundedOutput
    exit_code: int | None
    timed_out: bool


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """SIGKILL the runtime process and anything it spawned."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


class LocalContainerRunner:
    """Runs snippets in containers via the local runtime CLI.

    Usage:
        runner = LocalContainerRunner()
        result = await runner.exec("echo hello\\n", load_policy())

        # Alternate runtime
        runner = LocalContainerRunner(RunnerConfig(runtime_binary="podman"))
    """

    # Timeout for runtime probes (version, image inspect)
    _RUNTIME_CHECK_TIMEOUT = 10  # seconds

    def __init__(self, config: RunnerConfig | None = None) -> None:
        """Initialize the runner.

        Args:
            config: Runner defaults (default: derived from settings)
        """
        self.config = config or RunnerConfig.from_settings()

    async def exec(self, code: str, policy: SandboxPolicy) -> SandboxResult:
        """Execute a shell snippet in a fresh container.

        Args:
            code: Shell snippet, run with /bin/sh inside the container
            policy: Effective policy

        Returns:
            SandboxResult; a timeout yields ``exit_code=None`` and partial output

        Raises:
            StagingError: If the snippet cannot be staged
            MountResolutionError: If a mount source cannot be created
            ArgumentContractError: If a mount reaches argument building unresolved
            RuntimeSpawnError: If the runtime binary cannot be launched
        """
        run_id = str(uuid.uuid4())
        started_at = datetime.now(UTC)
        staging_dir = self._create_staging_dir()

        try:
            script_path = self._stage_script(staging_dir, code)

            mounts = resolve_mounts(policy.fs.mounts, self.config.workspace_root)
            mounts.append(
                ResolvedMount(
                    kind=MountKind.BIND.value,
                    target=CONTAINER_SCRIPT_PATH,
                    writable=False,
                    resolved_source=str(script_path),
                )
            )

            args = build_run_args(
                self.config.image,
                policy,
                mounts,
                command=["/bin/sh", CONTAINER_SCRIPT_PATH],
            )
            self._warn_unenforced_network(run_id, policy)
            logger.debug(
                "Starting sandbox run %s: %s %s",
                run_id,
                self.config.runtime_binary,
                " ".join(args),
            )

            loop = asyncio.get_running_loop()
            start_time = loop.time()
            outcome = await self._spawn(args, policy.proc.timeout_ms)
            wall_time_ms = round((loop.time() - start_time) * 1000)

            logger.info(
                "Sandbox run %s finished: exit_code=%s duration_ms=%d timed_out=%s",
                run_id,
                outcome.exit_code,
                wall_time_ms,
                outcome.timed_out,
            )

            return SandboxResult(
                id=run_id,
                stdout=outcome.stdout.text(),
                stderr=outcome.stderr.text(),
                exit_code=outcome.exit_code,
                effective_policy=policy.model_copy(deep=True),
                resource_usage=ResourceUsage(wall_time_ms=wall_time_ms),
                output_truncated=outcome.stdout.truncated or outcome.stderr.truncated,
                timed_out=outcome.timed_out,
                started_at=started_at,
                completed_at=datetime.now(UTC),
            )

        finally:
            self._remove_staging_dir(staging_dir)

    def _create_staging_dir(self) -> Path:
        try:
            return Path(tempfile.mkdtemp(prefix="codebox-", dir=self.config.temp_dir))
        except OSError as e:
            raise StagingError(f"Cannot create staging directory: {e}") from e

    def _remove_staging_dir(self, staging_dir: Path) -> None:
        """Best-effort cleanup; a failure is logged, never raised."""
        try:
            shutil.rmtree(staging_dir)
        except OSError as e:
            logger.warning("Failed to remove staging directory %s: %s", staging_dir, e)

    def _stage_script(self, staging_dir: Path, code: str) -> Path:
        script_path = staging_dir / SCRIPT_NAME
        try:
            script_path.write_text(code, encoding="utf-8")
            script_path.chmod(SCRIPT_MODE)
        except OSError as e:
            raise StagingError(f"Cannot stage snippet: {e}") from e
        return script_path

    def _warn_unenforced_network(self, run_id: str, policy: SandboxPolicy) -> None:
        if policy.net.enabled and (policy.net.allowlist or policy.net.proxy):
            logger.warning(
                "Sandbox run %s: network allowlist/proxy is advisory; "
                "the runtime bridge network does not enforce it",
                run_id,
            )

    async def _spawn(self, args: list[str], timeout_ms: int | None) -> _ProcessOutcome:
        """Spawn the runtime and join output drains with exit or deadline."""
        binary = self.config.runtime_binary
        try:
            process = await asyncio.create_subprocess_exec(
                binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise RuntimeSpawnError(
                f"Cannot launch container runtime '{binary}': {e}",
                binary=binary,
            ) from e

        stdout = BoundedOutput(self.config.max_output_bytes)
        stderr = BoundedOutput(self.config.max_output_bytes)
        drains = [
            asyncio.create_task(drain(process.stdout, stdout)),
            asyncio.create_task(drain(process.stderr, stderr)),
        ]
        timed_out = False

        try:
            timeout = timeout_ms / 1000 if timeout_ms is not None else None
            try:
                await asyncio.wait_for(process.wait(), timeout=timeout)
            except TimeoutError:
                timed_out = True
                logger.warning("Sandbox deadline of %dms reached, killing runtime", timeout_ms)
                _kill_process_group(process)
                await process.wait()

            done, pending = await asyncio.wait(drains, timeout=_DRAIN_GRACE_SECONDS)
            if pending:
                logger.warning("Output streams still open after exit, discarding the rest")
                _kill_process_group(process)
                for task in pending:
                    task.cancel()
                await asyncio.wait(pending)
            for task in done:
                task.result()

        finally:
            if process.returncode is None:
                _kill_process_group(process)
            for task in drains:
                task.cancel()

        returncode = process.returncode
        exit_code = returncode if returncode is not None and returncode >= 0 else None
        return _ProcessOutcome(stdout=stdout, stderr=stderr, exit_code=exit_code, timed_out=timed_out)

    async def _probe(self, *args: str) -> tuple[int | None, bytes]:
        process = await asyncio.create_subprocess_exec(
            self.config.runtime_binary,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(), timeout=self._RUNTIME_CHECK_TIMEOUT
            )
        except TimeoutError:
            process.kill()
            await process.wait()
            raise
        return process.returncode, stdout

    async def check_runtime(self) -> dict[str, Any]:
        """Check if the container runtime and image are available.

        Returns:
            Dictionary with runtime status information
        """
        result: dict[str, Any] = {
            "runtime": self.config.runtime_binary,
            "image": self.config.image,
            "runtime_available": False,
            "image_available": False,
            "errors": [],
        }

        try:
            returncode, stdout = await self._probe("version", "--format", "{{.Client.Version}}")
            if returncode == 0:
                result["runtime_available"] = True
                result["runtime_version"] = stdout.decode(errors="replace").strip()
            else:
                result["errors"].append(f"'{self.config.runtime_binary} version' failed")
        except FileNotFoundError:
            result["errors"].append(f"Runtime '{self.config.runtime_binary}' not found")
        except TimeoutError:
            result["errors"].append("Timed out waiting for the runtime")
        except OSError as e:
            result["errors"].append(f"Error launching runtime: {e}")

        if result["runtime_available"]:
            try:
                returncode, _ = await self._probe("image", "inspect", self.config.image)
                result["image_available"] = returncode == 0
                if not result["image_available"]:
                    result["errors"].append(f"Image '{self.config.image}' not found locally")
            except (TimeoutError, OSError) as e:
                result["errors"].append(f"Error checking image: {e}")

        return result


# Convenience function
async def run_snippet(
    code: str,
    policy: SandboxPolicy | None = None,
) -> SandboxResult:
    """Run a snippet with a default-configured LocalContainerRunner.

    Args:
        code: Shell snippet to execute
        policy: Effective policy (default: load_policy())

    Returns:
        SandboxResult with execution details
    """
    runner = LocalContainerRunner()
    return await runner.exec(code, policy or load_policy())


__all__ = [
    "CONTAINER_SCRIPT_PATH",
    "LocalContainerRunner",
    "ResourceUsage",
    "RunnerConfig",
    "SandboxResult",
    "SandboxRunner",
    "run_snippet",
]
