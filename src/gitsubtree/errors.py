"""Error taxonomy for gitsubtree."""


class SubtreeError(Exception):
    """Base class for all subtree failures."""

    pass


class UserInputError(SubtreeError):
    """Invalid or missing user input (prefix, branch, onto, options)."""

    pass


class StateConflictError(SubtreeError):
    """Repository state prevents the operation (unmerged index, locks)."""

    pass


class IntegrityError(SubtreeError):
    """Internal bookkeeping is inconsistent; the run is aborted."""

    pass


class NoOpError(SubtreeError):
    """There is nothing new to squash, merge or rejoin."""

    pass
