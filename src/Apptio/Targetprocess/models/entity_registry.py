# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Static registry of well-known Targetprocess entity types.

The registry doubles as the allow-list used when the live entity-type list
cannot be fetched.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple


class EntityCategory(str, Enum):
    ASSIGNABLE = "assignable"
    PROJECT = "project"
    PLANNING = "planning"
    SYSTEM = "system"
    CUSTOM = "custom"


_CATEGORY_TITLES = {
    EntityCategory.ASSIGNABLE: "Work Items",
    EntityCategory.PROJECT: "Project Management",
    EntityCategory.PLANNING: "Planning",
    EntityCategory.SYSTEM: "System",
    EntityCategory.CUSTOM: "Custom",
}


@dataclass(frozen=True)
class EntityTypeInfo:
    """
    Metadata about one entity type.

    :param name: Entity type name as used in the REST path, e.g. ``"UserStory"``.
    :param category: Broad grouping of the type.
    :param description: One-line human description.
    :param supports_custom_fields: Whether ``CustomField.*`` conditions apply.
    :param parent_types: Types this entity is usually nested under.
    :param common_includes: Related fields worth including by default.
    """

    name: str
    category: EntityCategory
    description: str
    supports_custom_fields: bool = True
    parent_types: Tuple[str, ...] = ()
    common_includes: Tuple[str, ...] = ()

    @classmethod
    def custom(cls, name: str, description: Optional[str] = None) -> "EntityTypeInfo":
        """Metadata for a type discovered at runtime but absent from the registry."""
        return cls(name, EntityCategory.CUSTOM, description or f"Custom entity type: {name}")


def _info(*args, **kwargs) -> Tuple[str, EntityTypeInfo]:
    info = EntityTypeInfo(*args, **kwargs)
    return info.name, info


ENTITY_TYPES: Mapping[str, EntityTypeInfo] = dict(
    [
        # Work items that can be assigned to users
        _info(
            "UserStory",
            EntityCategory.ASSIGNABLE,
            "User stories represent features from the user perspective",
            parent_types=("Feature", "Epic"),
            common_includes=("Project", "Feature", "EntityState", "Priority", "AssignedUser", "Team"),
        ),
        _info(
            "Bug",
            EntityCategory.ASSIGNABLE,
            "Bugs track defects and issues",
            parent_types=("UserStory", "Feature"),
            common_includes=("Project", "UserStory", "EntityState", "Priority", "Severity", "AssignedUser"),
        ),
        _info(
            "Task",
            EntityCategory.ASSIGNABLE,
            "Tasks represent work items within user stories",
            parent_types=("UserStory",),
            common_includes=("UserStory", "EntityState", "AssignedUser"),
        ),
        _info(
            "Feature",
            EntityCategory.ASSIGNABLE,
            "Features group related user stories",
            parent_types=("Epic",),
            common_includes=("Project", "Epic", "EntityState", "AssignedUser"),
        ),
        _info(
            "Epic",
            EntityCategory.ASSIGNABLE,
            "Epics represent large bodies of work",
            parent_types=("Project",),
            common_includes=("Project", "EntityState", "AssignedUser"),
        ),
        _info(
            "TestCase",
            EntityCategory.ASSIGNABLE,
            "Test cases for quality assurance",
            parent_types=("UserStory",),
            common_includes=("UserStory", "Project", "AssignedUser"),
        ),
        _info(
            "TestPlan",
            EntityCategory.ASSIGNABLE,
            "Test plans organize test cases",
            common_includes=("Project", "Release", "TestCases"),
        ),
        _info(
            "Request",
            EntityCategory.ASSIGNABLE,
            "Customer requests and feedback",
            common_includes=("Project", "EntityState", "AssignedUser"),
        ),
        # Project management
        _info(
            "Project",
            EntityCategory.PROJECT,
            "Projects contain all work items",
            common_includes=("Program", "Process", "EntityState"),
        ),
        _info("Program", EntityCategory.PROJECT, "Programs group related projects", common_includes=("Projects",)),
        _info("Team", EntityCategory.PROJECT, "Teams work on projects", common_includes=("TeamMembers", "Projects")),
        # Planning
        _info(
            "Iteration",
            EntityCategory.PLANNING,
            "Iterations represent sprints or time boxes",
            common_includes=("Project", "UserStories", "Tasks", "Bugs"),
        ),
        _info(
            "Release",
            EntityCategory.PLANNING,
            "Releases group work for deployment",
            common_includes=("Project", "Features", "UserStories"),
        ),
        _info(
            "TeamIteration",
            EntityCategory.PLANNING,
            "Team-specific iteration planning",
            common_includes=("Team", "Iteration"),
        ),
        # System
        _info("GeneralUser", EntityCategory.SYSTEM, "System users", False, common_includes=("Teams", "Role")),
        _info("EntityState", EntityCategory.SYSTEM, "Workflow states", False, common_includes=("Process", "EntityType")),
        _info("Priority", EntityCategory.SYSTEM, "Priority levels", False),
        _info("Severity", EntityCategory.SYSTEM, "Bug severity levels", False),
        _info("Role", EntityCategory.SYSTEM, "User roles", False),
        _info("Process", EntityCategory.SYSTEM, "Development process templates", False),
    ]
)

# Resources whose REST collection is not the plain plural of the type name
_ENDPOINT_OVERRIDES: Dict[str, str] = {"TimeSheet": "time"}


def all_entity_types() -> List[str]:
    return list(ENTITY_TYPES)


def entity_types_by_category(category: EntityCategory) -> List[str]:
    category = EntityCategory(category)
    return [name for name, info in ENTITY_TYPES.items() if info.category is category]


def get_entity_type_info(entity_type: str) -> Optional[EntityTypeInfo]:
    return ENTITY_TYPES.get(entity_type)


def common_includes(entity_type: str) -> List[str]:
    info = ENTITY_TYPES.get(entity_type)
    return list(info.common_includes) if info else []


def parent_types(entity_type: str) -> List[str]:
    info = ENTITY_TYPES.get(entity_type)
    return list(info.parent_types) if info else []


def is_assignable(entity_type: str) -> bool:
    info = ENTITY_TYPES.get(entity_type)
    return info is not None and info.category is EntityCategory.ASSIGNABLE


def supports_custom_fields(entity_type: str) -> bool:
    info = ENTITY_TYPES.get(entity_type)
    return bool(info and info.supports_custom_fields)


def endpoint_for_entity_type(entity_type: str) -> str:
    """
    REST collection name for ``entity_type``.

    Example::

        endpoint_for_entity_type("UserStory")  # "UserStorys"
        endpoint_for_entity_type("TimeSheet")  # "time"
    """
    return _ENDPOINT_OVERRIDES.get(entity_type, f"{entity_type}s")


def describe_entity_types(extra: Optional[List[str]] = None) -> str:
    """
    One line per category listing its types, for error messages and tool help.

    Names in ``extra`` that the registry does not know are listed as custom.
    """
    grouped: Dict[EntityCategory, List[str]] = {}
    for name, info in ENTITY_TYPES.items():
        grouped.setdefault(info.category, []).append(name)
    for name in extra or ():
        if name not in ENTITY_TYPES:
            grouped.setdefault(EntityCategory.CUSTOM, []).append(name)
    lines = [f"{_CATEGORY_TITLES[c]}: {', '.join(grouped[c])}" for c in EntityCategory if grouped.get(c)]
    return "\n".join(lines)


__all__ = [
    "EntityCategory",
    "EntityTypeInfo",
    "ENTITY_TYPES",
    "all_entity_types",
    "entity_types_by_category",
    "get_entity_type_info",
    "common_includes",
    "parent_types",
    "is_assignable",
    "supports_custom_fields",
    "endpoint_for_entity_type",
    "describe_entity_types",
]
