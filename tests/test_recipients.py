import pytest

from roundup.config import Settings
from roundup.errors import InvalidInput, UnknownGroup
from roundup.recipients import RecipientRegistry


def test_resolve_known_group(registry):
    assert registry.resolve("testing-only") == ["qa@example.com"]
    assert registry.resolve("team") == ["alice@example.com", "bob@example.com"]


def test_unknown_group(registry):
    with pytest.raises(UnknownGroup) as excinfo:
        registry.resolve("unknown-group")
    assert isinstance(excinfo.value, InvalidInput)
    assert excinfo.value.to_dict()["group"] == "unknown-group"


def test_resolved_list_cannot_mutate_registry(registry):
    addresses = registry.resolve("team")
    addresses.append("mallory@example.com")
    assert registry.resolve("team") == ["alice@example.com", "bob@example.com"]


def test_accepts_address_sequences():
    registry = RecipientRegistry({"ops": ["ops@example.com", " oncall@example.com "]})
    assert registry.resolve("ops") == ["ops@example.com", "oncall@example.com"]


@pytest.mark.parametrize("addresses", ["", " , ", []])
def test_empty_group_rejected(addresses):
    with pytest.raises(ValueError):
        RecipientRegistry({"empty": addresses})


def test_invalid_address_rejected():
    with pytest.raises(ValueError, match="not-an-email"):
        RecipientRegistry({"bad": "ok@example.com,not-an-email"})


def test_from_settings_merges_legacy_list_and_groups():
    settings = Settings(
        _env_file=None,
        recipient_emails="a@example.com,b@example.com",
        recipient_groups={"testing-only": "qa@example.com"},
    )
    registry = RecipientRegistry.from_settings(settings)
    assert registry.group_names == ("default", "testing-only")
    assert registry.resolve("default") == ["a@example.com", "b@example.com"]
    assert registry.resolve("testing-only") == ["qa@example.com"]


def test_recipient_groups_read_from_environment(monkeypatch):
    monkeypatch.setenv("RECIPIENT_GROUPS", '{"testing-only": "qa@example.com"}')
    monkeypatch.delenv("RECIPIENT_EMAILS", raising=False)
    registry = RecipientRegistry.from_settings(Settings(_env_file=None))
    assert registry.resolve("testing-only") == ["qa@example.com"]
    with pytest.raises(UnknownGroup):
        registry.resolve("default")


def test_recipient_groups_accept_json_lists(monkeypatch):
    monkeypatch.setenv("RECIPIENT_GROUPS", '{"ops": ["ops@example.com", "oncall@example.com"]}')
    monkeypatch.delenv("RECIPIENT_EMAILS", raising=False)
    registry = RecipientRegistry.from_settings(Settings(_env_file=None))
    assert registry.resolve("ops") == ["ops@example.com", "oncall@example.com"]
