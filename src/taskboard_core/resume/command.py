"""Build the command that resumes an agent session for a supported tool."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field

from ..errors import InvalidSessionError, UnsupportedToolError

TOOL_OPENCODE = "opencode"
TOOL_CLAUDE_CODE = "claude-code"
TOOL_CODEX = "codex"

VALID_TOOLS = (TOOL_OPENCODE, TOOL_CLAUDE_CODE, TOOL_CODEX)

MIN_SESSION_REF_LENGTH = 8


@dataclass
class ResumeCommand:
    tool: str
    session_ref: str
    working_dir: str
    prompt: str
    args: list[str] = field(default_factory=list)

    @property
    def command(self) -> str:
        """Shell-quoted rendering of :attr:`args` for display and copy/paste."""
        return " ".join(shlex.quote(arg) for arg in self.args)


def _args_for(tool: str, session_ref: str, prompt: str) -> list[str]:
    if tool == TOOL_OPENCODE:
        return ["opencode", "run", prompt, "--session", session_ref]
    if tool == TOOL_CLAUDE_CODE:
        return ["claude", "--resume", session_ref, prompt]
    if tool == TOOL_CODEX:
        return ["codex", "exec", "resume", session_ref, prompt]
    raise UnsupportedToolError(tool, VALID_TOOLS)


def build_resume_command(tool: str, session_ref: str, working_dir: str, prompt: str) -> ResumeCommand:
    """Return the argv and working directory used to resume ``session_ref``.

    Raises:
        UnsupportedToolError: ``tool`` is not one of :data:`VALID_TOOLS`.
    """
    args = _args_for(tool, session_ref, prompt)
    return ResumeCommand(
        tool=tool,
        session_ref=session_ref,
        working_dir=working_dir,
        prompt=prompt,
        args=args,
    )


def is_valid_tool(tool: str) -> bool:
    return tool in VALID_TOOLS


def validate_session_ref(tool: str, ref: str) -> None:
    if not ref:
        raise InvalidSessionError("session reference is empty")
    if tool in VALID_TOOLS and len(ref) < MIN_SESSION_REF_LENGTH:
        raise InvalidSessionError(
            f"session reference seems too short: {ref!r} (minimum {MIN_SESSION_REF_LENGTH} characters)"
        )
