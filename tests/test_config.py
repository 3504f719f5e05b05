"""Tests for settings validation and YAML config loading."""

import pytest
import yaml
from grafana_unfurl.config import Settings, load_settings, mask_sensitive, parse_duration
from grafana_unfurl.config.loader import read_config_file
from grafana_unfurl.core.errors import ConfigurationError

BASE_CONFIG = {
    "grafana": {"url": "http://grafana:3000", "matchUrl": "https://grafana.example.com"},
    "s3": {"bucket": "bucket", "accessKeyId": "AKIA", "secretAccessKey": "secret"},
    "slack": {"botToken": "xoxb-token"},
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GRAFANA_UNFURL_GRAFANA_RETENTION", "GRAFANA_UNFURL_S3_BUCKET", "GRAFANA_UNFURL_S3_ROOT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir("/")


def _write(tmp_path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestParseDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("45s", 45), ("15m", 900), ("2h", 7200), ("30d", 2592000), (120, 120)],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["30", "1w", "d", "-1d", "1.5h", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="grafana.retention"):
            parse_duration(value, "grafana.retention")


class TestSettings:
    def test_normalises_urls_and_root(self, settings):
        assert settings.grafana_url.endswith("/")
        assert settings.grafana_match_url.endswith("/")
        assert settings.url_path == "/"
        assert settings.s3_root == "cache/"
        assert settings.grafana_retention == 3600
        assert settings.grafana_cleanup_interval == 600

    def test_empty_root_stays_empty(self, settings):
        copy = Settings(**{**settings.model_dump(), "s3_root": ""})
        assert copy.s3_root == ""

    def test_signing_credentials_default_to_upload_credentials(self, settings):
        assert settings.s3_url_signing_access_key_id == "upload-key"
        assert settings.s3_url_signing_secret_access_key == "upload-secret"

    def test_explicit_signing_credentials_win(self):
        settings = Settings(
            grafana_url="http://g",
            grafana_match_url="https://g",
            s3_bucket="b",
            s3_url_signing_access_key_id="sign-key",
            s3_url_signing_secret_access_key="sign-secret",
            slack_bot_token="t",
        )
        assert settings.s3_access_key_id is None
        assert settings.s3_url_signing_access_key_id == "sign-key"


class TestLoadSettings:
    def test_loads_camel_case_file(self, tmp_path):
        config = {
            **BASE_CONFIG,
            "urlPath": "/unfurl",
            "grafana": {
                **BASE_CONFIG["grafana"],
                "retention": "7d",
                "headers": {"Authorization": "Bearer abc"},
                "render": {"width": 800, "height": 400},
            },
            "s3": {**BASE_CONFIG["s3"], "root": "/images/", "urlSigning": {"accessKeyId": "SIGN"}},
        }

        settings = load_settings(_write(tmp_path, config))

        assert settings.url_path == "/unfurl/"
        assert settings.grafana_url == "http://grafana:3000/"
        assert settings.grafana_retention == 7 * 86400
        assert settings.grafana_headers == {"Authorization": "Bearer abc"}
        assert (settings.grafana_render_width, settings.grafana_render_height) == (800, 400)
        assert settings.s3_root == "images/"
        assert settings.s3_url_signing_access_key_id == "SIGN"
        assert settings.s3_url_signing_secret_access_key == "secret"

    def test_file_overrides_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GRAFANA_UNFURL_S3_BUCKET", "from-env")
        monkeypatch.setenv("GRAFANA_UNFURL_S3_ROOT", "env-root")

        settings = load_settings(_write(tmp_path, BASE_CONFIG))

        assert settings.s3_bucket == "bucket"
        assert settings.s3_root == "env-root/"

    def test_missing_file_falls_back_to_environment(self, tmp_path):
        with pytest.raises(ConfigurationError, match="grafana_url"):
            load_settings(tmp_path / "absent.yaml")

    def test_invalid_duration(self, tmp_path):
        config = {**BASE_CONFIG, "grafana": {**BASE_CONFIG["grafana"], "retention": "1 week"}}

        with pytest.raises(ConfigurationError, match="grafana_retention"):
            load_settings(_write(tmp_path, config))

    def test_missing_signing_credentials(self, tmp_path):
        config = {**BASE_CONFIG, "s3": {"bucket": "bucket"}}

        with pytest.raises(ConfigurationError, match="signing credentials"):
            load_settings(_write(tmp_path, config))

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            read_config_file(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("grafana: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Unable to parse"):
            read_config_file(path)


def test_mask_sensitive_hides_credentials(settings):
    settings = Settings(
        **{**settings.model_dump(), "grafana_headers": {"Authorization": "Bearer x", "X-Org": "1"}}
    )

    masked = mask_sensitive(settings)

    assert masked["s3_secret_access_key"] == "XXXX"
    assert masked["s3_url_signing_access_key_id"] == "XXXX"
    assert masked["slack_bot_token"] == "XXXX"
    assert masked["slack_signing_secret"] is None
    assert masked["grafana_headers"] == {"Authorization": "XXXX", "X-Org": "1"}
    assert masked["s3_bucket"] == "unfurl-bucket"
    assert settings.slack_bot_token == "xoxb-test"
