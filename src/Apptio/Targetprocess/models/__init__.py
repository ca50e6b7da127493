# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Query models for the Targetprocess client.

- :mod:`~Apptio.Targetprocess.models.where`: where-clause parser and compiler.
- :class:`~Apptio.Targetprocess.models.query_builder.QueryBuilder`: Immutable query builder.
- :mod:`~Apptio.Targetprocess.models.presets`: Named where-clause presets.
- :mod:`~Apptio.Targetprocess.models.entity_registry`: Well-known entity types.

Note:
    This ``__init__.py`` does NOT import/export models. Import directly from
    the specific module files.
"""

__all__ = []
