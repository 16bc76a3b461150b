"""Load the optional core configuration from `.taskboard/config.yaml`."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .constants import (
    CONFIG_FILE,
    DEFAULT_CONTEXT_COMMENT_LIMIT,
    DEFAULT_DESCRIPTION_TRUNCATE,
    DEFAULT_POSITION_GAP,
    DEFAULT_SUGGEST_LIMIT,
    MIN_POSITION_GAP,
    STATE_DIR_NAME,
)
from .io_utils import _load_data_with_error

AGENT_ENV_VAR = "TASKBOARD_AGENT"


class CoreConfig(BaseModel):
    """Settings shared by the engine and the resume trigger.

    Constructed explicitly and handed to each component; nothing caches it
    at module level.
    """

    default_resume_mode: Literal["manual", "command", "auto"] = "command"
    context_comment_limit: int = Field(default=DEFAULT_CONTEXT_COMMENT_LIMIT, ge=1)
    description_truncate: int = Field(default=DEFAULT_DESCRIPTION_TRUNCATE, ge=1)
    default_working_dir: str = "."
    position_gap: float = Field(default=DEFAULT_POSITION_GAP, gt=0)
    min_position_gap: float = Field(default=MIN_POSITION_GAP, gt=0)
    suggest_limit: int = Field(default=DEFAULT_SUGGEST_LIMIT, ge=0)
    agent_name: str = "agent"


def load_core_config(project_dir: Path) -> tuple[CoreConfig, str | None]:
    """Load the optional core config file.

    Args:
        project_dir: Repository root directory.

    Returns:
        A tuple of `(config, error_message)`. A missing file yields defaults
        and no error; an unreadable or invalid file yields defaults plus the
        error text.
    """
    project_dir = project_dir.resolve()
    path = project_dir / STATE_DIR_NAME / CONFIG_FILE
    data, err = _load_data_with_error(path, {})
    error: str | None = err
    config = CoreConfig()
    if not err and data:
        try:
            config = CoreConfig.model_validate(data)
        except PydanticValidationError as exc:
            error = f"{path.name}: {exc.error_count()} invalid setting(s): {exc}"
    agent = os.environ.get(AGENT_ENV_VAR, "").strip()
    if agent:
        config = config.model_copy(update={"agent_name": agent})
    return config, error
