"""
Posts core version info
"""

from . import __version__

PROJECT_VERSION: str = __version__

API_VERSION: int = 1
