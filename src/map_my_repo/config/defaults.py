"""Default configuration tables for map-my-repo."""

# Visual radius per node kind (also the base of the collision radius)
NODE_RADIUS: dict[str, float] = {
    "folder": 14.0,
    "file": 10.0,
    "class": 8.0,
    "component": 8.0,
    "function": 6.0,
}

# Target link length, keyed by the kind of the link's *target* node
LINK_DISTANCE: dict[str, float] = {
    "folder": 180.0,
    "file": 120.0,
    "class": 80.0,
    "component": 80.0,
    "function": 80.0,
}

# Many-body strength per kind (negative = repulsion); the root overrides it
CHARGE_STRENGTH: dict[str, float] = {
    "folder": -500.0,
    "file": -300.0,
    "class": -120.0,
    "component": -120.0,
    "function": -80.0,
}
ROOT_CHARGE_STRENGTH = -1200.0

# Files at or above this size are not read eagerly and cannot be analyzed
MAX_CONTENT_BYTES = 200_000

# Prompt truncation limits (characters)
ANALYSIS_CONTENT_LIMIT = 40_000
QUESTION_CONTENT_LIMIT = 30_000
MAX_SEARCH_PATHS = 1_000
TREE_STRING_MAX_DEPTH = 4

# Directories never ingested from a local checkout
DEFAULT_IGNORE_PATTERNS = [
    # Version control
    ".git",
    ".hg",
    ".svn",
    # Python caches and environments
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    ".tox",
    ".venv",
    "venv",
    # JavaScript/Node.js
    ".next",
    ".yarn",
    "node_modules",
    # Build outputs
    "build",
    "dist",
    "target",
    # Editors
    ".idea",
    ".vscode",
]

DEFAULT_IGNORE_FILES = [
    "*.pyc",
    "*.pyo",
    ".DS_Store",
    "*.lock",
]
