"""map-my-repo - interactive, incrementally disclosed maps of codebases."""

__version__ = "0.3.0"
__author__ = "map-my-repo contributors"

from .core.exceptions import MapMyRepoError

__all__ = ["MapMyRepoError", "__version__"]
