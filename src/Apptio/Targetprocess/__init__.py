# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Targetprocess query client.

Compiles Targetprocess where/include/orderBy queries, validates entity types
against a shared single-flight cache, retries transient failures with
jittered exponential backoff, and pages large results by key.
"""

__version__ = "0.1.0"

from .client import TargetprocessClient
from .core._auth import AuthConfig

__all__ = ["TargetprocessClient", "AuthConfig", "__version__"]
