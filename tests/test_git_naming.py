import pytest

from launcher.git.errors import InvalidArgumentError
from launcher.git.naming import (
    check_repository_full_name,
    check_repository_name,
    create_repository_full_name,
    is_valid_repository_full_name,
    is_valid_repository_name,
)


@pytest.mark.parametrize("name", ["demo-app", "demo_app", "Demo.App2", "a", "x" * 100])
def test_valid_repository_names(name):
    assert is_valid_repository_name(name)


@pytest.mark.parametrize("name", ["", None, "-demo", ".hidden", "has space", "a/b", "x" * 101, "demo.git"])
def test_invalid_repository_names(name):
    assert not is_valid_repository_name(name)


def test_check_repository_name_empty_message():
    with pytest.raises(InvalidArgumentError) as exc:
        check_repository_name("")
    assert exc.value.code == "invalid_argument"
    assert str(exc.value) == "repositoryName must not be empty."


def test_invalid_argument_is_value_error():
    with pytest.raises(ValueError):
        check_repository_name("bad name")


def test_full_name_requires_exactly_one_separator():
    assert is_valid_repository_full_name("acme/demo-app")
    assert not is_valid_repository_full_name("demo-app")
    assert not is_valid_repository_full_name("acme/team/demo-app")
    with pytest.raises(InvalidArgumentError):
        check_repository_full_name("acme/")


def test_create_repository_full_name():
    assert create_repository_full_name("acme", "demo-app") == "acme/demo-app"
