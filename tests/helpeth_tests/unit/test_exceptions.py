"""
Unit tests for the exception hierarchy.
"""

from helpeth.core.exceptions import (
    AddressError,
    ConfigurationError,
    HelpethError,
    IndirectAddressError,
    KeyLoadError,
    KeystoreMismatchError,
    MissingKeyError,
    MissingPasswordError,
    PasswordRequiredError,
    get_error_context,
)


def test_hierarchy():
    assert issubclass(MissingKeyError, ConfigurationError)
    assert issubclass(IndirectAddressError, AddressError)
    assert issubclass(KeystoreMismatchError, KeyLoadError)
    assert PasswordRequiredError is MissingPasswordError
    assert all(
        issubclass(cls, HelpethError) for cls in (ConfigurationError, AddressError, KeyLoadError)
    )


def test_errors_are_fatal():
    assert not HelpethError("boom").recoverable


def test_default_messages():
    assert "--private" in str(MissingKeyError())
    assert "--password-prompt" in str(MissingPasswordError())


def test_error_context():
    exc = IndirectAddressError("indirect", details={"asset": "ETH"})
    assert get_error_context(exc) == {
        "error_type": "IndirectAddressError",
        "error_message": "indirect",
        "details": {"asset": "ETH"},
    }
    assert "details" not in get_error_context(ValueError("plain"))
