"""Enumeration types for reqtrack."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Role(StrEnum):
    """User roles, ordered by the privilege they grant."""

    ADMINISTRATOR = "Administrator"
    USER = "User"
    COMMENTER = "Commenter"

    @property
    def rank(self) -> int:
        return _ROLE_RANKS[self]

    def satisfies(self, required: Role) -> bool:
        """Return True when this role is at least as privileged as ``required``."""
        return self.rank >= required.rank


_ROLE_RANKS: dict[Role, int] = {
    Role.ADMINISTRATOR: 3,
    Role.USER: 2,
    Role.COMMENTER: 1,
}


class Priority(IntEnum):
    """Entity priority. Lower numbers are more urgent."""

    CRITICAL = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4


class EntityType(StrEnum):
    """Tag for the four primary entity shapes."""

    EPIC = "epic"
    USER_STORY = "user_story"
    ACCEPTANCE_CRITERIA = "acceptance_criteria"
    REQUIREMENT = "requirement"

    @property
    def table(self) -> str:
        return _ENTITY_TABLES[self]

    @property
    def reference_prefix(self) -> str:
        return _ENTITY_PREFIXES[self]

    @property
    def url_segment(self) -> str:
        return self.value.replace("_", "-") + (
            "" if self is EntityType.ACCEPTANCE_CRITERIA else "s"
        )

    @classmethod
    def from_url_segment(cls, segment: str) -> EntityType:
        """Resolve a URL path segment such as ``user-stories`` to an entity type.

        Raises:
            ValueError: If the segment names no entity type.
        """
        for member in cls:
            if member.url_segment == segment:
                return member
        msg = f"Unknown entity type: {segment!r}"
        raise ValueError(msg)


_ENTITY_TABLES: dict[EntityType, str] = {
    EntityType.EPIC: "epics",
    EntityType.USER_STORY: "user_stories",
    EntityType.ACCEPTANCE_CRITERIA: "acceptance_criteria",
    EntityType.REQUIREMENT: "requirements",
}

_ENTITY_PREFIXES: dict[EntityType, str] = {
    EntityType.EPIC: "EP",
    EntityType.USER_STORY: "US",
    EntityType.ACCEPTANCE_CRITERIA: "AC",
    EntityType.REQUIREMENT: "REQ",
}


class AuthMethod(StrEnum):
    """How a request principal authenticated."""

    JWT = "jwt"
    PAT = "pat"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"
