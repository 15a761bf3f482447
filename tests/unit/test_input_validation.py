import pytest

from modcatalog.core.validation import (
    is_bounded_text,
    is_valid_category_filter,
    is_valid_email,
    is_valid_url,
    is_valid_username,
)


@pytest.mark.parametrize("username", ["ab", "steve_01", "张三", "a" * 20])
def test_valid_usernames(username):
    assert is_valid_username(username)


@pytest.mark.parametrize("username", ["a", "a" * 21, "bad name", "bad-name", "", None, 42])
def test_invalid_usernames(username):
    assert not is_valid_username(username)


@pytest.mark.parametrize("email", ["steve@example.com", "a.b@mail.example.org"])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "a@@b.com", "a b@c.com", "@example.com", "a@.com", None])
def test_invalid_emails(email):
    assert not is_valid_email(email)


def test_url_requires_http_scheme_and_host():
    assert is_valid_url("https://example.com/mod.zip")
    assert is_valid_url("http://localhost:8080")
    assert not is_valid_url("ftp://example.com/file")
    assert not is_valid_url("javascript:alert(1)")
    assert not is_valid_url("https://")
    assert not is_valid_url("")


def test_bounded_text():
    assert is_bounded_text("x")
    assert is_bounded_text("x" * 1000)
    assert not is_bounded_text("x" * 1001)
    assert not is_bounded_text("")
    assert not is_bounded_text(None)
    assert is_bounded_text("abc", max_length=3)


def test_category_filter():
    assert is_valid_category_filter("magic")
    assert is_valid_category_filter("sci-fi_2")
    assert not is_valid_category_filter("magic; DROP TABLE mods")
    assert not is_valid_category_filter("")
