STATE_DIR_NAME = ".taskboard"
CONFIG_FILE = "config.yaml"
WINDOWS_LOCK_BYTES = 4096

TASKS = "tasks"
BOARDS = "boards"
COMMENTS = "comments"
COLLECTIONS = (TASKS, BOARDS, COMMENTS)

COLUMN_BACKLOG = "backlog"
COLUMN_TODO = "todo"
COLUMN_IN_PROGRESS = "in_progress"
COLUMN_NEED_INPUT = "need_input"
COLUMN_REVIEW = "review"
COLUMN_DONE = "done"

# Workflow order, not alphabetical.
VALID_COLUMNS = (
    COLUMN_BACKLOG,
    COLUMN_TODO,
    COLUMN_IN_PROGRESS,
    COLUMN_NEED_INPUT,
    COLUMN_REVIEW,
    COLUMN_DONE,
)
DEFAULT_BOARD_COLUMNS = (COLUMN_BACKLOG, COLUMN_TODO, COLUMN_IN_PROGRESS, COLUMN_REVIEW, COLUMN_DONE)
ACTIONABLE_COLUMNS = frozenset({COLUMN_TODO, COLUMN_BACKLOG})
TERMINAL_COLUMN = COLUMN_DONE

VALID_TYPES = ("bug", "feature", "chore")
VALID_PRIORITIES = ("low", "medium", "high", "urgent")

RESUME_MODE_MANUAL = "manual"
RESUME_MODE_COMMAND = "command"
RESUME_MODE_AUTO = "auto"
VALID_RESUME_MODES = (RESUME_MODE_MANUAL, RESUME_MODE_COMMAND, RESUME_MODE_AUTO)

AUTHOR_HUMAN = "human"
AUTHOR_AGENT = "agent"
AGENT_MENTION = "@agent"

ACTOR_USER = "user"
ACTOR_AGENT = "agent"
ACTOR_CLI = "cli"
ACTOR_SYSTEM = "system"
VALID_ACTORS = (ACTOR_USER, ACTOR_AGENT, ACTOR_CLI, ACTOR_SYSTEM)

DEFAULT_POSITION_GAP = 1000.0
MIN_POSITION_GAP = 0.001

DEFAULT_CONTEXT_COMMENT_LIMIT = 100
DEFAULT_DESCRIPTION_TRUNCATE = 500
DEFAULT_SUGGEST_LIMIT = 5
SHORT_ID_LENGTH = 8
