"""Shared test fixtures for codebox.

Unit tests never need a real container runtime: ``fake_runtime`` is a
small shell script that accepts ``docker run`` arguments and runs the
staged snippet directly on the host.
"""

from pathlib import Path

import pytest

from codebox.sandbox.policies import SandboxPolicy
from codebox.sandbox.runner import RunnerConfig
from codebox.settings import Settings, get_settings
from tests.helpers.policies import make_policy

FAKE_RUNTIME = """#!/bin/sh
# Stand-in for `docker`: records its arguments and runs the staged snippet.
printf '%s\\n' "$@" > "$0.args"
script=""
for arg in "$@"; do
  case "$arg" in
    *target=/sandbox/snippet.sh,source=*)
      script="${arg#*source=}"
      script="${script%%,*}"
      ;;
  esac
done
exec /bin/sh "$script"
"""


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Never leak cached settings between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspace-root"
    root.mkdir()
    return root


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    root = tmp_path / "staging"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(workspace_root: Path, staging_root: Path) -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        environment="testing",
        sandbox_image="sandbox:test",
        sandbox_runtime="docker",
        sandbox_workspace_root=workspace_root,
        sandbox_temp_dir=staging_root,
        sandbox_max_output_bytes=1024,
    )


# =============================================================================
# RUNTIME
# =============================================================================


@pytest.fixture
def fake_runtime(tmp_path: Path) -> Path:
    path = tmp_path / "fake-docker"
    path.write_text(FAKE_RUNTIME)
    path.chmod(0o755)
    return path


@pytest.fixture
def runner_config(fake_runtime: Path, workspace_root: Path, staging_root: Path) -> RunnerConfig:
    return RunnerConfig(
        image="sandbox:test",
        runtime_binary=str(fake_runtime),
        workspace_root=workspace_root,
        temp_dir=staging_root,
        max_output_bytes=1024,
    )


# =============================================================================
# POLICIES
# =============================================================================


@pytest.fixture
def sample_policy() -> SandboxPolicy:
    return make_policy(timeout_ms=5000)


@pytest.fixture
def policy_document() -> dict:
    """A valid camelCase policy document, as parsed from YAML."""
    return {
        "fs": {
            "mounts": [
                {"source": "./workspace", "target": "/workspace", "writable": True, "type": "bind"},
                {"target": "/tmp", "writable": True, "type": "tmpfs"},
            ],
            "denyGlobs": ["**/.env"],
            "maxTotalMb": 256,
        },
        "net": {
            "enabled": True,
            "allowlist": [{"host": "pypi.org", "ports": [443], "protocols": ["https"]}],
            "proxy": {"url": "http://proxy.internal:3128"},
        },
        "proc": {
            "cpuQuota": 0.5,
            "memoryMb": 256,
            "timeoutMs": 2000,
            "uid": 1000,
            "gid": 1000,
            "maxChildProcesses": 4,
            "env": {"LANG": "C.UTF-8"},
            "workdir": "/workspace",
        },
        "metadata": {"owner": "ci", "attempt": 1, "trusted": False},
    }
