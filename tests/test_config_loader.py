import json

from typer.testing import CliRunner

from lio_agent.cli.commands import app
from lio_agent.config.loader import (
    camel_to_snake,
    convert_keys,
    convert_to_camel,
    get_config_path,
    load_config,
    save_config,
    snake_to_camel,
)
from lio_agent.config.schema import Config
from lio_agent.utils.helpers import get_data_path

runner = CliRunner()


def _set_home(monkeypatch, tmp_path):
    home = tmp_path / "home"
    home.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("HOME", str(home))
    return home


def test_key_case_conversion():
    assert camel_to_snake("channelAccessToken") == "channel_access_token"
    assert snake_to_camel("max_messages_per_reply") == "maxMessagesPerReply"


def test_voice_names_are_kept_verbatim():
    raw = {"media": {"defaultVoice": "Sarah", "voices": {"SarahHappy": "v-1", "Roger": "v-2"}}}

    converted = convert_keys(raw)

    assert converted["media"]["default_voice"] == "Sarah"
    assert converted["media"]["voices"] == {"SarahHappy": "v-1", "Roger": "v-2"}
    assert convert_to_camel(converted) == raw


def test_data_dir_env_override(monkeypatch, tmp_path):
    _set_home(monkeypatch, tmp_path)
    custom = tmp_path / "profile"
    monkeypatch.setenv("LIO_DATA_DIR", str(custom))

    assert get_data_path() == custom
    assert get_config_path() == custom / "config.json"
    assert Config().agents.defaults.workspace == str(custom / "workspace")


def test_save_and_load_config(monkeypatch, tmp_path):
    monkeypatch.setenv("LIO_DATA_DIR", str(tmp_path / "data"))
    path = tmp_path / "config.json"
    config = Config()
    config.line.channel_secret = "s3cret"
    config.line.allow_from = ["U1"]
    config.agents.defaults.max_attempts = 3

    save_config(config, path)
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    loaded = load_config(path)

    assert on_disk["line"]["channelSecret"] == "s3cret"
    assert on_disk["agents"]["defaults"]["maxAttempts"] == 3
    assert loaded.line.channel_secret == "s3cret"
    assert loaded.line.allow_from == ["U1"]
    assert loaded.agents.defaults.max_attempts == 3


def test_broken_config_falls_back_to_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("LIO_DATA_DIR", str(tmp_path / "data"))
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    config = load_config(path)

    assert config.line.max_messages_per_reply == 5
    assert config.agents.defaults.timezone == "Asia/Taipei"


def test_env_overrides_nested_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("LIO_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LIO_GATEWAY__PORT", "8123")

    assert Config().gateway.port == 8123


def test_api_key_follows_model_provider(monkeypatch, tmp_path):
    monkeypatch.setenv("LIO_DATA_DIR", str(tmp_path / "data"))
    config = Config()
    config.providers.gemini.api_key = "g-key"
    config.providers.openai.api_key = "o-key"

    assert config.provider_for_model("gemini/gemini-2.0-flash-001") == "gemini"
    assert config.get_api_key("gemini/gemini-2.0-flash-001") == "g-key"
    assert config.get_api_key("dall-e-3") == "o-key"
    assert config.provider_for_model("mystery-model") is None


def test_onboard_creates_then_refreshes_config(monkeypatch, tmp_path):
    _set_home(monkeypatch, tmp_path)
    data_dir = tmp_path / "lio"
    monkeypatch.setenv("LIO_DATA_DIR", str(data_dir))

    first = runner.invoke(app, ["onboard"])
    assert first.exit_code == 0
    assert "Created config" in first.stdout
    assert (data_dir / "workspace" / "state" / "store").is_dir()

    data = json.loads((data_dir / "config.json").read_text(encoding="utf-8"))
    data["line"]["channelSecret"] = "keep-me"
    (data_dir / "config.json").write_text(json.dumps(data), encoding="utf-8")

    second = runner.invoke(app, ["onboard"])
    assert second.exit_code == 0
    assert "Refreshed config" in second.stdout
    refreshed = json.loads((data_dir / "config.json").read_text(encoding="utf-8"))
    assert refreshed["line"]["channelSecret"] == "keep-me"


def test_gateway_requires_line_credentials(monkeypatch, tmp_path):
    _set_home(monkeypatch, tmp_path)
    monkeypatch.setenv("LIO_DATA_DIR", str(tmp_path / "lio"))

    result = runner.invoke(app, ["gateway"])

    assert result.exit_code == 1
    assert "LINE channel credentials are not configured" in result.stdout
