"""Unit tests for codebox/exceptions.py."""

import uuid

import pytest

from codebox.exceptions import (
    ArgumentContractError,
    CodeboxError,
    MountResolutionError,
    PolicyError,
    PolicyLoadError,
    PolicyMissingError,
    PolicyValidationError,
    RuntimeSpawnError,
    SandboxError,
    StagingError,
)


class TestCodeboxError:
    def test_generates_correlation_id(self):
        error = CodeboxError("failed")
        uuid.UUID(error.correlation_id)  # Should not raise
        assert str(error) == "failed"

    def test_explicit_correlation_id(self):
        error = CodeboxError("failed", correlation_id="req-42")
        assert error.correlation_id == "req-42"

    def test_ids_are_unique(self):
        assert CodeboxError("a").correlation_id != CodeboxError("b").correlation_id


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            PolicyValidationError("fs.mounts", "required"),
            PolicyLoadError("bad file"),
            PolicyMissingError("/etc/policy.yaml"),
        ],
    )
    def test_policy_errors(self, error):
        assert isinstance(error, PolicyError)
        assert isinstance(error, CodeboxError)

    @pytest.mark.parametrize(
        "error",
        [
            StagingError("disk full"),
            MountResolutionError("denied", target="/workspace"),
            ArgumentContractError("/data"),
            RuntimeSpawnError("missing", binary="docker"),
        ],
    )
    def test_sandbox_errors(self, error):
        assert isinstance(error, SandboxError)
        assert error.timeout is False


class TestErrorDetails:
    def test_validation_error_fields(self):
        error = PolicyValidationError("proc.timeoutMs", "must be positive", correlation_id="c1")
        assert error.field == "proc.timeoutMs"
        assert error.constraint == "must be positive"
        assert error.correlation_id == "c1"
        assert str(error) == "Invalid policy field 'proc.timeoutMs': must be positive"

    def test_missing_error_path(self):
        error = PolicyMissingError("/srv/sandbox.policy.yaml")
        assert error.path == "/srv/sandbox.policy.yaml"
        assert "not found" in str(error)

    def test_mount_error_fields(self):
        error = MountResolutionError("denied", target="/workspace", source="/host/ws")
        assert error.target == "/workspace"
        assert error.source == "/host/ws"

    def test_contract_error_message(self):
        error = ArgumentContractError("/data")
        assert error.target == "/data"
        assert str(error) == "Mount for target /data is missing a resolved source path"

    def test_sandbox_timeout_flag(self):
        assert SandboxError("deadline", timeout=True).timeout is True
