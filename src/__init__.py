"""medevidence: evidence cache, guideline conflict detection and sufficiency scoring."""

from medevidence.version import __version__

__all__ = ["__version__"]
