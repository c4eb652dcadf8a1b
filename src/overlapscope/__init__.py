"""
overlapscope: execution overlap and duration analysis for trace databases.

Computes how long each recorded execution ran concurrently with others,
tracks the number of concurrently active executions over time, and reports
duration statistics per view and form.
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

try:
    __version__ = get_version("overlapscope")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = ["__version__"]
