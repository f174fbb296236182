"""
The library's own version, as installed, e.g. for the ``User-Agent`` header.

There is no version constant in the codebase: the versions come from the git
tags at packaging time (see ``setuptools_scm`` in ``setup.py``) and are only
visible via the installed distribution's metadata.

It is detected once on import.
"""
import importlib.metadata
from typing import Optional

DISTRIBUTION = 'bcc'


def detect_version(distribution: str = DISTRIBUTION) -> Optional[str]:
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        return None  # running from the sources, not installed.


version: Optional[str] = detect_version()
