# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Shared constants for the Targetprocess client."""

__all__ = []
