"""Test configuration loading"""

from pathlib import Path

import pytest
import yaml

from snatcher.config.settings import Settings, reload_settings, get_settings
from snatcher.core.exceptions import ConfigError

ENV_VARS = [
    'SNATCHER_CONFIG', 'SNATCHER_DATA_FILE', 'SNATCHER_DOWNLOAD_DIR', 'SNATCHER_BUCKET',
    'SNATCHER_LOG_LEVEL', 'AWS_ACCESS_KEY_ID', 'AWS_SECRET_ACCESS_KEY', 'AWS_REGION',
    'AWS_ENDPOINT_URL',
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's environment out of the settings under test"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def write_config(path, data):
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return str(path)


class TestSettingsFile:
    """Test reading the config file"""

    def test_defaults_without_file(self, temp_dir):
        """Test that a missing file leaves defaults in place"""
        settings = Settings(str(temp_dir / "absent"))

        assert settings.playback.buffer_size == 256 * 1024
        assert settings.playback.sink_buffer_msec == 200
        assert settings.storage.bucket_name == ""
        assert not Path(settings.download.download_dir).as_posix().startswith("~")

    def test_sectioned_layout(self, temp_dir):
        """Test the sectioned layout"""
        config = write_config(temp_dir / "config.yaml", {
            'storage': {'bucket_name': 'music', 'endpoint': 'https://s3.example.com'},
            'playback': {'buffer_size': 1024, 'unknown_field': 1},
            'logging': {'level': 'DEBUG'},
        })
        settings = Settings(config)

        assert settings.storage.bucket_name == 'music'
        assert settings.storage.endpoint == 'https://s3.example.com'
        assert settings.playback.buffer_size == 1024
        assert not hasattr(settings.playback, 'unknown_field')
        assert settings.logging.level == 'DEBUG'

    def test_flat_layout(self, temp_dir):
        """Test the flat key layout"""
        config = write_config(temp_dir / "config.yaml", {
            'aws_bucket_name': 'legacy',
            'aws_access_key': 'AK',
            'aws_secret_key': 'SK',
            'aws_region': 'ru-central1',
            'aws_endpoint': 'https://storage.example.net',
            'download_dir': str(temp_dir / "downloads"),
        })
        settings = Settings(config)

        assert settings.storage.bucket_name == 'legacy'
        assert settings.storage.access_key == 'AK'
        assert settings.storage.secret_key == 'SK'
        assert settings.storage.region == 'ru-central1'
        assert settings.storage.endpoint == 'https://storage.example.net'
        assert settings.get_download_directory() == temp_dir / "downloads"

    def test_malformed_yaml(self, temp_dir):
        """Test that an unparsable file raises ConfigError"""
        path = temp_dir / "config.yaml"
        path.write_text("storage: [broken\n")
        with pytest.raises(ConfigError):
            Settings(str(path))

    def test_non_mapping(self, temp_dir):
        """Test that a file that is not a mapping raises ConfigError"""
        path = temp_dir / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            Settings(str(path))

    def test_tilde_expansion(self, temp_dir):
        """Test that ~ is expanded in paths"""
        config = write_config(temp_dir / "config.yaml", {
            'paths': {'data_file': '~/catalog.yaml'},
        })
        settings = Settings(config)
        assert settings.get_data_file() == Path.home() / "catalog.yaml"

    def test_save_config_blanks_credentials(self, temp_dir):
        """Test that saved configs never contain secrets"""
        config = write_config(temp_dir / "config.yaml", {
            'storage': {'bucket_name': 'music', 'access_key': 'AK', 'secret_key': 'SK'},
        })
        settings = Settings(config)
        target = temp_dir / "saved.yaml"
        settings.save_config(str(target))

        saved = yaml.safe_load(target.read_text())
        assert saved['storage']['bucket_name'] == 'music'
        assert saved['storage']['access_key'] == ""
        assert saved['storage']['secret_key'] == ""


class TestEnvironment:
    """Test environment overrides"""

    def test_env_overrides_file(self, temp_dir, monkeypatch):
        """Test that credentials from the environment win"""
        config = write_config(temp_dir / "config.yaml", {
            'storage': {'access_key': 'from-file', 'region': 'eu'},
        })
        monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'from-env')
        monkeypatch.setenv('SNATCHER_DATA_FILE', str(temp_dir / "data.yaml"))

        settings = Settings(config)
        assert settings.storage.access_key == 'from-env'
        assert settings.storage.region == 'eu'
        assert settings.get_data_file() == temp_dir / "data.yaml"

    def test_config_path_from_env(self, temp_dir, monkeypatch):
        """Test SNATCHER_CONFIG selects the config file"""
        config = write_config(temp_dir / "config.yaml", {'storage': {'bucket_name': 'env-bucket'}})
        monkeypatch.setenv('SNATCHER_CONFIG', config)

        assert Settings().storage.bucket_name == 'env-bucket'

    def test_reload_replaces_singleton(self, temp_dir):
        """Test that reload_settings swaps the global instance"""
        config = write_config(temp_dir / "config.yaml", {'storage': {'bucket_name': 'reloaded'}})
        settings = reload_settings(config)

        assert get_settings() is settings
        assert get_settings().storage.bucket_name == 'reloaded'


class TestStorageRequirements:
    """Test storage completeness checks"""

    def test_missing_fields(self, temp_dir):
        """Test that incomplete storage settings are reported by name"""
        config = write_config(temp_dir / "config.yaml", {'storage': {'bucket_name': 'music'}})
        settings = Settings(config)

        assert settings.missing_storage_fields() == ['access_key', 'secret_key', 'endpoint']
        with pytest.raises(ConfigError) as exc_info:
            settings.require_storage()
        assert 'endpoint' in str(exc_info.value)

    def test_complete_storage(self, temp_dir):
        """Test that complete settings pass"""
        config = write_config(temp_dir / "config.yaml", {'storage': {
            'bucket_name': 'music', 'access_key': 'AK', 'secret_key': 'SK',
            'endpoint': 'https://s3.example.com',
        }})
        assert Settings(config).require_storage().bucket_name == 'music'
