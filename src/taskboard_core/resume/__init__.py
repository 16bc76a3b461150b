from .command import (
    VALID_TOOLS,
    ResumeCommand,
    build_resume_command,
    is_valid_tool,
    validate_session_ref,
)
from .context import build_context_prompt, build_minimal_prompt
from .executor import BackgroundLauncher, ProcessExecutor, SubprocessExecutor
from .service import AutoResumeService, ResumeOutcome

__all__ = [
    "VALID_TOOLS",
    "ResumeCommand",
    "build_resume_command",
    "is_valid_tool",
    "validate_session_ref",
    "build_context_prompt",
    "build_minimal_prompt",
    "BackgroundLauncher",
    "ProcessExecutor",
    "SubprocessExecutor",
    "AutoResumeService",
    "ResumeOutcome",
]
