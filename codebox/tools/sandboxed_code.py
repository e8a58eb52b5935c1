"""Sandboxed code execution tool.

Exposes the container runner as a callable capability for agents.
The tool loads the policy file (falling back to defaults), applies the
configured and per-call overrides, runs the snippet, and returns a short
human-readable summary plus the full structured result.

Failures (invalid input, broken policy file, missing runtime, ...) come
back as error results instead of propagating into the host agent.
"""

from __future__ import annotations

import logging
import math
import traceback
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import AliasChoices, BaseModel, Field

from codebox.exceptions import CodeboxError
from codebox.sandbox.loader import load_policy, merge_policy
from codebox.sandbox.policies import SandboxPolicy, SandboxPolicyOverrides
from codebox.sandbox.runner import LocalContainerRunner, SandboxResult, SandboxRunner
from codebox.sandbox.validation import validate_overrides
from codebox.settings import get_settings

logger = logging.getLogger(__name__)

SANDBOXED_CODE_TOOL_NAME = "sandboxed_code_run"
SANDBOXED_CODE_TOOL_DESCRIPTION = "Execute POSIX shell snippets inside the hardened sandbox container."

TRUNCATION_NOTE = "stdout/stderr truncated by sandbox to stay within limits"
TIMEOUT_NOTE = "sandbox deadline reached; the process was killed"


class SandboxedCodeInput(BaseModel):
    """Tool input."""

    code: str = Field(..., min_length=1, description="POSIX shell snippet to execute")
    policy_overrides: SandboxPolicyOverrides | None = Field(
        default=None,
        validation_alias=AliasChoices("policy_overrides", "policyOverrides"),
        description="Partial sandbox policy applied on top of the configured policy",
    )


class ToolResult(BaseModel):
    """Tool output: summary text plus structured content."""

    content: str
    is_error: bool = False
    structured_content: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# FORMATTING
# =============================================================================


def ensure_trailing_newline(code: str) -> str:
    return code if code.endswith("\n") else f"{code}\n"


def ellipsize(value: str, limit: int) -> str:
    """Shorten ``value`` to ``limit`` characters, keeping its head and tail.

    A non-positive limit leaves the value untouched.
    """
    if not value or limit <= 0 or len(value) <= limit:
        return value
    if limit <= 4:
        return f"{value[:limit]}..."
    head = math.ceil((limit - 3) / 2)
    tail = limit - 3 - head
    return f"{value[:head]}...{value[len(value) - tail:]}"


def summarize_output(result: SandboxResult, limit: int) -> str:
    """Human-readable summary capped to roughly ``limit`` characters of output.

    The budget is split between stdout and stderr; stdout gets the odd
    character.
    """
    exit_code = "null" if result.exit_code is None else result.exit_code
    blocks = [
        f"exitCode: {exit_code}",
        f"wallTimeMs: {result.resource_usage.wall_time_ms}",
    ]
    if result.timed_out:
        blocks.append(TIMEOUT_NOTE)
    if result.output_truncated:
        blocks.append(TRUNCATION_NOTE)

    limit = max(0, limit)
    stderr_budget = limit // 2
    stdout_budget = limit - stderr_budget

    stdout_summary = ellipsize(result.stdout, stdout_budget)
    if stdout_summary:
        blocks.append(f"stdout:\n{stdout_summary}")
    stderr_summary = ellipsize(result.stderr, stderr_budget)
    if stderr_summary:
        blocks.append(f"stderr:\n{stderr_summary}")

    return "\n\n".join(blocks)


def serialize_error(error: BaseException) -> dict[str, Any]:
    """Serialize an exception as ``{name, message, stack}``."""
    payload: dict[str, Any] = {
        "name": type(error).__name__,
        "message": str(error),
    }
    if error.__traceback__ is not None:
        payload["stack"] = "".join(traceback.format_exception(error))
    if isinstance(error, CodeboxError):
        payload["correlation_id"] = error.correlation_id
    return payload


def format_success_result(result: SandboxResult, text_limit: int) -> ToolResult:
    return ToolResult(
        content=summarize_output(result, text_limit),
        structured_content={
            "exitCode": result.exit_code,
            "stdout": result.stdout,
            "stderr": result.stderr,
            "effectivePolicy": result.effective_policy.to_document(),
            "resourceUsage": result.resource_usage.model_dump(
                mode="json", by_alias=True, exclude_none=True
            ),
            "outputTruncated": result.output_truncated,
            "timedOut": result.timed_out,
        },
    )


def format_error_result(error: BaseException) -> ToolResult:
    return ToolResult(
        content=f"Sandbox execution failed: {error}",
        is_error=True,
        structured_content={"error": serialize_error(error)},
    )


# =============================================================================
# TOOL
# =============================================================================


class SandboxedCodeTool:
    """Execution adapter between a host agent and a SandboxRunner.

    Usage:
        tool = SandboxedCodeTool(default_policy_overrides={"proc": {"timeoutMs": 5000}})
        result = await tool.invoke({"code": "ls /workspace"})
        print(result.content)
    """

    def __init__(
        self,
        runner: SandboxRunner | None = None,
        policy_file: str | Path | None = None,
        policy_cwd: str | Path | None = None,
        default_policy_overrides: SandboxPolicyOverrides | Mapping[str, Any] | None = None,
        max_text_output_chars: int | None = None,
    ) -> None:
        """Initialize the tool.

        Args:
            runner: Runner used for execution (default: LocalContainerRunner)
            policy_file: Policy document (default: settings.sandbox_policy_file)
            policy_cwd: Directory the policy file resolves against (default: cwd)
            default_policy_overrides: Overrides applied to every call
            max_text_output_chars: Summary budget (default: settings.sandbox_summary_max_chars)
        """
        settings = get_settings()
        self.runner = runner or LocalContainerRunner()
        self.policy_file = policy_file or settings.sandbox_policy_file
        self.policy_cwd = Path(policy_cwd) if policy_cwd is not None else Path.cwd()
        self.default_policy_overrides = (
            validate_overrides(default_policy_overrides)
            if default_policy_overrides is not None
            else None
        )
        self.max_text_output_chars = (
            max_text_output_chars
            if max_text_output_chars is not None
            else settings.sandbox_summary_max_chars
        )

    def effective_policy(self, policy_overrides: SandboxPolicyOverrides | None = None) -> SandboxPolicy:
        """File/default policy, then configured overrides, then call overrides."""
        policy = load_policy(self.policy_file, self.policy_cwd)
        policy = merge_policy(policy, self.default_policy_overrides)
        return merge_policy(policy, policy_overrides)

    async def invoke(self, tool_input: Mapping[str, Any]) -> ToolResult:
        """Run a snippet and format the outcome.

        Args:
            tool_input: ``{"code": str, "policy_overrides": {...}}``

        Returns:
            ToolResult; ``is_error`` is set when anything failed
        """
        try:
            params = SandboxedCodeInput.model_validate(tool_input)
            policy = self.effective_policy(params.policy_overrides)
            result = await self.runner.exec(ensure_trailing_newline(params.code), policy)
        except Exception as e:
            logger.error("Sandboxed code execution failed: %s", e)
            return format_error_result(e)

        return format_success_result(result, self.max_text_output_chars)


def create_sandboxed_code_tool(**options: Any) -> StructuredTool:
    """Wrap a SandboxedCodeTool as a LangChain tool.

    The tool returns the summary as content and the full ToolResult as
    artifact.

    Args:
        **options: Passed through to SandboxedCodeTool

    Returns:
        StructuredTool named ``sandboxed_code_run``
    """
    adapter = SandboxedCodeTool(**options)

    async def _run(
        code: str,
        policy_overrides: SandboxPolicyOverrides | None = None,
    ) -> tuple[str, dict[str, Any]]:
        result = await adapter.invoke({"code": code, "policy_overrides": policy_overrides})
        return result.content, result.model_dump()

    return StructuredTool.from_function(
        coroutine=_run,
        name=SANDBOXED_CODE_TOOL_NAME,
        description=SANDBOXED_CODE_TOOL_DESCRIPTION,
        args_schema=SandboxedCodeInput,
        response_format="content_and_artifact",
    )


__all__ = [
    "SANDBOXED_CODE_TOOL_NAME",
    "SandboxedCodeInput",
    "SandboxedCodeTool",
    "ToolResult",
    "create_sandboxed_code_tool",
    "ellipsize",
    "summarize_output",
]
