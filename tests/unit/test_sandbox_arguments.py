"""Unit tests for codebox/sandbox/arguments.py."""

import pytest

from codebox.exceptions import ArgumentContractError
from codebox.sandbox.arguments import build_run_args, mount_flag
from codebox.sandbox.policies import ResolvedMount
from tests.helpers.policies import make_policy


def _workspace_mount() -> ResolvedMount:
    return ResolvedMount(
        source="./workspace",
        target="/workspace",
        writable=True,
        resolved_source="/host/workspace",
    )


class TestMountFlag:
    def test_writable_bind(self):
        assert mount_flag(_workspace_mount()) == "type=bind,target=/workspace,source=/host/workspace"

    def test_readonly_bind(self):
        mount = ResolvedMount(source="deps", target="/deps", writable=False, resolved_source="/host/deps")
        assert mount_flag(mount) == "type=bind,target=/deps,source=/host/deps,readonly"

    def test_tmpfs_has_no_source(self):
        mount = ResolvedMount(target="/tmp", writable=True, kind="tmpfs")
        assert mount_flag(mount) == "type=tmpfs,target=/tmp"

    def test_unresolved_bind_rejected(self):
        mount = ResolvedMount(source="./data", target="/data", writable=True)
        with pytest.raises(ArgumentContractError) as exc_info:
            mount_flag(mount)
        assert exc_info.value.target == "/data"
        assert "/data" in str(exc_info.value)


class TestBuildRunArgs:
    def test_leading_flag_order(self):
        policy = make_policy(cpu_quota=1, memory_mb=256, max_child_processes=1)
        args = build_run_args("sandbox:latest", policy, [_workspace_mount()])
        assert args[:10] == [
            "run",
            "--rm",
            "--network",
            "none",
            "--cpus",
            "1",
            "--memory",
            "256m",
            "--pids-limit",
            "2",
        ]

    def test_network_enabled_uses_bridge(self):
        args = build_run_args("img", make_policy(network=True), [])
        assert args[2:4] == ["--network", "bridge"]

    def test_fractional_cpus(self):
        args = build_run_args("img", make_policy(cpu_quota=0.5), [])
        assert args[args.index("--cpus") + 1] == "0.5"

    def test_fractional_memory(self):
        args = build_run_args("img", make_policy(memory_mb=256.5), [])
        assert args[args.index("--memory") + 1] == "256.5m"

    def test_large_memory_not_in_exponent_form(self):
        args = build_run_args("img", make_policy(memory_mb=2_097_152), [])
        assert args[args.index("--memory") + 1] == "2097152m"

    def test_pids_limit_floor(self):
        args = build_run_args("img", make_policy(max_child_processes=0), [])
        assert args[args.index("--pids-limit") + 1] == "1"

    def test_omitted_limits_not_emitted(self):
        args = build_run_args("img", make_policy(), [])
        assert args == ["run", "--rm", "--network", "none", "img"]

    def test_user_defaults_gid_to_uid(self):
        args = build_run_args("img", make_policy(uid=1000), [])
        assert args[args.index("--user") + 1] == "1000:1000"

    def test_user_defaults_uid_to_root(self):
        args = build_run_args("img", make_policy(gid=50), [])
        assert args[args.index("--user") + 1] == "0:50"

    def test_workdir(self):
        args = build_run_args("img", make_policy(workdir="/workspace"), [])
        assert args[args.index("--workdir") + 1] == "/workspace"

    def test_env_in_insertion_order(self):
        args = build_run_args("img", make_policy(env={"B": "2", "A": "x=y"}), [])
        env_values = [args[i + 1] for i, arg in enumerate(args) if arg == "--env"]
        assert env_values == ["B=2", "A=x=y"]

    def test_mounts_then_image_then_command(self):
        mounts = [
            _workspace_mount(),
            ResolvedMount(target="/tmp", writable=True, kind="tmpfs"),
        ]
        args = build_run_args(
            "sandbox:latest",
            make_policy(uid=1, gid=2, workdir="/workspace", env={"K": "V"}),
            mounts,
            command=["/bin/sh", "/sandbox/snippet.sh"],
        )
        assert args[4:] == [
            "--user",
            "1:2",
            "--workdir",
            "/workspace",
            "--env",
            "K=V",
            "--mount",
            "type=bind,target=/workspace,source=/host/workspace",
            "--mount",
            "type=tmpfs,target=/tmp",
            "sandbox:latest",
            "/bin/sh",
            "/sandbox/snippet.sh",
        ]

    def test_image_last_without_command(self):
        args = build_run_args("img", make_policy(), [_workspace_mount()])
        assert args[-1] == "img"

    def test_unresolved_mount_raises(self):
        with pytest.raises(ArgumentContractError):
            build_run_args("img", make_policy(), [ResolvedMount(source="x", target="/x", writable=True)])
