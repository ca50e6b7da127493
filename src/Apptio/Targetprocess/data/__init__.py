# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Internal service client and entity-type cache."""

__all__ = []
