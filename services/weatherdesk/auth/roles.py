"""System roles. Two values, compared by equality at the route boundary."""

import enum


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
