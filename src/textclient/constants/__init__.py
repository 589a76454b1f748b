"""
Constants package for the Matrix text client.

Constants are grouped into submodules by category. This __init__.py re-exports
the union of the submodules' __all__ so callers can write
`from textclient.constants import LOGGER_NAME`.
"""

from collections import Counter

from . import api as _api
from . import app as _app
from . import config as _config
from . import logging as _logging
from . import matrix as _matrix
from . import messages as _messages
from .api import *  # noqa: F403
from .app import *  # noqa: F403
from .config import *  # noqa: F403
from .logging import *  # noqa: F403
from .matrix import *  # noqa: F403
from .messages import *  # noqa: F403


class DuplicateConstantError(NameError):
    """Raised when two constant submodules export the same name."""

    def __init__(self, duplicates):
        """
        Parameters:
            duplicates (Iterable[str]): Names exported by more than one submodule.
        """
        self.duplicates = tuple(duplicates)
        super().__init__(
            f"Duplicate constants found in textclient.constants: {self.duplicates}"
        )


_modules = (_api, _app, _config, _logging, _matrix, _messages)
__all__ = tuple(name for m in _modules for name in getattr(m, "__all__", []))

if len(__all__) != len(set(__all__)):
    counts = Counter(__all__)
    raise DuplicateConstantError(
        sorted(name for name, count in counts.items() if count > 1)
    )
