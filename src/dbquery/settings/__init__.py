"""Settings for dbquery built on pydantic-settings.

Configuration Sources (precedence order):
    1. Environment Variables (highest priority), prefixed with ``DBQUERY_``
    2. ``.env`` file in the working directory
    3. Default Values in code (lowest priority)

Quick Start:
    >>> from dbquery.settings import get_settings
    >>> settings = get_settings()
    >>> settings.project_dir
    PosixPath('dbcube')
"""

from .main import _Settings, get_settings, _reload_settings, is_test_mode

__all__ = [
    "get_settings",
]
