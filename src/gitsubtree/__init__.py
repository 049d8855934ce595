"""gitsubtree - Subtree split for git.

Split subdirectories of a repository out into their own histories, and
merge them back.
"""

__version__ = "0.1.0"

from gitsubtree.engine import SplitEngine, create_engine
from gitsubtree.models import SplitOptions, SplitResult

__all__ = [
    "__version__",
    "SplitEngine",
    "create_engine",
    "SplitOptions",
    "SplitResult",
]
