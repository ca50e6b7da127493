# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

__all__ = []
