# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Operation namespace classes for the Targetprocess client.

- QueryOperations: entity search, lookup and paging
"""

__all__ = []
