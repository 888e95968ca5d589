"""Tests for relay configuration loading."""
import pytest
from pydantic import ValidationError

from chat_relay.chat.coordinator import DuplicateNamePolicy
from chat_relay.chat.service import ChatRelay
from chat_relay.config import ChatSettings, RelayConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("RELAY_SETTINGS_FILE", raising=False)


class TestDefaults:
    def test_default_history_capacity(self):
        assert RelayConfig().chat.history_capacity == 100

    def test_default_policy_is_takeover(self):
        assert RelayConfig().chat.duplicate_name_policy == "takeover"

    def test_default_server(self):
        cfg = RelayConfig()
        assert cfg.server.port == 3000
        assert cfg.server.allowed_origins == ["http://localhost:5173"]

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(settings_path=tmp_path / "absent.yaml")
        assert cfg == RelayConfig()


class TestValidation:
    @pytest.mark.parametrize("capacity", [0, -1])
    def test_capacity_must_be_positive(self, capacity):
        with pytest.raises(ValidationError):
            ChatSettings(history_capacity=capacity)

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValidationError):
            ChatSettings(duplicate_name_policy="merge")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            ChatSettings(send_timeout_seconds=0)


class TestLoadConfig:
    def test_yaml_values_are_applied(self, tmp_path):
        settings_file = tmp_path / "relay.settings.yaml"
        settings_file.write_text(
            "server:\n"
            "  port: 9000\n"
            "chat:\n"
            "  history_capacity: 5\n"
            "  duplicate_name_policy: reject\n"
            "logging:\n"
            "  level: debug\n",
            encoding="utf-8",
        )

        cfg = load_config(settings_path=settings_file)

        assert cfg.server.port == 9000
        assert cfg.chat.history_capacity == 5
        assert cfg.chat.duplicate_name_policy == "reject"
        assert cfg.logging.level == "debug"

    def test_settings_file_from_env(self, tmp_path, monkeypatch):
        settings_file = tmp_path / "custom.yaml"
        settings_file.write_text("chat:\n  history_capacity: 7\n", encoding="utf-8")
        monkeypatch.setenv("RELAY_SETTINGS_FILE", str(settings_file))

        assert load_config().chat.history_capacity == 7

    def test_port_env_overrides_file(self, tmp_path, monkeypatch):
        settings_file = tmp_path / "relay.settings.yaml"
        settings_file.write_text("server:\n  port: 9000\n", encoding="utf-8")
        monkeypatch.setenv("PORT", "4242")

        assert load_config(settings_path=settings_file).server.port == 4242

    def test_empty_file_gives_defaults(self, tmp_path):
        settings_file = tmp_path / "relay.settings.yaml"
        settings_file.write_text("", encoding="utf-8")
        assert load_config(settings_path=settings_file) == RelayConfig()


def test_relay_built_from_config():
    cfg = RelayConfig(chat=ChatSettings(
        history_capacity=2,
        duplicate_name_policy="reject",
        send_timeout_seconds=1.5,
    ))

    built = ChatRelay.from_config(cfg)

    assert built.history.capacity == 2
    assert built.coordinator.policy is DuplicateNamePolicy.REJECT
    assert built.manager.send_timeout == 1.5
