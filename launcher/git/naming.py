"""Repository naming rules shared by every provider."""

from __future__ import annotations

import re

from .errors import InvalidArgumentError

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,99}$")


def is_valid_repository_name(name: str | None) -> bool:
    return bool(name) and _NAME_PATTERN.match(name) is not None and not name.endswith(".git")


def is_valid_repository_full_name(full_name: str | None) -> bool:
    if not full_name or full_name.count("/") != 1:
        return False
    organization, name = full_name.split("/")
    return is_valid_repository_name(organization) and is_valid_repository_name(name)


def check_repository_name(name: str | None) -> str:
    if not name:
        raise InvalidArgumentError("repositoryName must not be empty.")
    if not is_valid_repository_name(name):
        raise InvalidArgumentError(f"'{name}' is not a valid repository name.")
    return name


def check_repository_full_name(full_name: str | None) -> str:
    if not full_name:
        raise InvalidArgumentError("repository full name must not be empty.")
    if not is_valid_repository_full_name(full_name):
        raise InvalidArgumentError(
            f"'{full_name}' is not a valid repository full name (expected 'organization/name')."
        )
    return full_name


def create_repository_full_name(organization: str, name: str) -> str:
    return f"{organization}/{name}"
