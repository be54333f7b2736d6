# dashacycle/version.py
from __future__ import annotations
import os

# Single place to bump the package version (overridable via env for CI/preview)
VERSION = os.getenv("DASHA_VERSION", "0.1.0")
