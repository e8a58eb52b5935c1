"""Agent-facing tools built on the sandbox runner."""

from codebox.tools.sandboxed_code import (
    SANDBOXED_CODE_TOOL_NAME,
    SandboxedCodeInput,
    SandboxedCodeTool,
    ToolResult,
    create_sandboxed_code_tool,
)

__all__ = [
    "SANDBOXED_CODE_TOOL_NAME",
    "SandboxedCodeInput",
    "SandboxedCodeTool",
    "ToolResult",
    "create_sandboxed_code_tool",
]
