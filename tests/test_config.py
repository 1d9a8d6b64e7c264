import logging
from pathlib import Path

import pytest

from episode_linker import config as config_module
from episode_linker.config import (
    DEFAULT_SITE_CONFIG,
    LinkerConfig,
    build_site_profile,
    get_configuration,
    load_site_config,
    load_site_profile,
    validate_configuration,
)
from episode_linker.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clear_site_cache():
    config_module._config_cache.clear()
    yield
    config_module._config_cache.clear()


def test_get_configuration_happy_path(mocker):
    config_data = """
[paths]
input_file=in.csv
output_file=out.csv
matches_file=known.csv

[browser]
headless=false
workers=4

[matching]
min_confidence=0.75
min_search_length=2
scorer=token_sort_ratio

[retry]
max_attempts=5
backoff_ms=100
"""
    mocker.patch("builtins.open", mocker.mock_open(read_data=config_data))
    mocker.patch("os.path.exists", return_value=True)

    settings = get_configuration("config.ini")

    assert settings.input_file == "in.csv"
    assert settings.output_file == "out.csv"
    assert settings.matches_file == "known.csv"
    assert settings.site_config == DEFAULT_SITE_CONFIG
    assert settings.headless is False
    assert settings.workers == 4
    assert settings.min_confidence == 0.75
    assert settings.min_search_length == 2
    assert settings.scorer == "token_sort_ratio"
    assert settings.retry.max_attempts == 5
    assert settings.retry.backoff_ms == 100


def test_get_configuration_defaults_without_file(mocker):
    mocker.patch("os.path.exists", return_value=False)
    assert get_configuration() == LinkerConfig()


def test_get_configuration_missing_explicit_file(mocker):
    mocker.patch("os.path.exists", return_value=False)
    with pytest.raises(SystemExit):
        get_configuration("missing.ini")


def test_get_configuration_invalid_number(mocker):
    config_data = """
[browser]
workers=many
"""
    mocker.patch("builtins.open", mocker.mock_open(read_data=config_data))
    mocker.patch("os.path.exists", return_value=True)
    with pytest.raises(ConfigurationError):
        get_configuration("config.ini")


def test_get_configuration_out_of_range_confidence(mocker):
    config_data = """
[matching]
min_confidence=1.5
"""
    mocker.patch("builtins.open", mocker.mock_open(read_data=config_data))
    mocker.patch("os.path.exists", return_value=True)
    with pytest.raises(ConfigurationError):
        get_configuration("config.ini")


def test_get_configuration_unparseable_file(mocker):
    mocker.patch("builtins.open", mocker.mock_open(read_data="no section header"))
    mocker.patch("os.path.exists", return_value=True)
    with pytest.raises(ConfigurationError):
        get_configuration("config.ini")


def test_validate_configuration_rejects_zero_workers():
    with pytest.raises(ConfigurationError):
        validate_configuration(LinkerConfig(workers=0))


def _write_site(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


SITE_YAML = """
site_name: Example
search_url: https://www.example.com/search/
shows_url: https://www.example.com/shows/
fallback_url: https://www.example.com/brands/fallback/
selectors:
  search_input: "#q"
timing:
  debounce_ms: 250
"""


def test_load_site_config_caches(tmp_path, mocker):
    path = _write_site(tmp_path / "site.yaml", SITE_YAML)
    first = load_site_config(path)

    spy = mocker.patch("yaml.safe_load")
    second = load_site_config(path)

    assert first is second
    spy.assert_not_called()


def test_load_site_config_missing_keys(tmp_path):
    path = _write_site(tmp_path / "site.yaml", "site_name: Example\n")
    with pytest.raises(ConfigurationError) as exc:
        load_site_config(path)
    assert "fallback_url" in str(exc.value)


def test_load_site_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_site_config(tmp_path / "nope.yaml")


def test_load_site_config_requires_mapping(tmp_path):
    path = _write_site(tmp_path / "site.yaml", "- a\n- b\n")
    with pytest.raises(ConfigurationError):
        load_site_config(path)


def test_build_site_profile_applies_overrides_and_defaults(tmp_path):
    path = _write_site(tmp_path / "site.yaml", SITE_YAML)
    profile = build_site_profile(load_site_config(path))

    assert profile.search_input == "#q"
    assert profile.debounce_ms == 250
    assert profile.search_results == '[data-ci="search-results"] a'
    assert profile.episode_wait_ms == 600
    assert profile.base_url == "https://www.example.com"


def test_build_site_profile_rejects_bad_timing(tmp_path):
    path = _write_site(tmp_path / "site.yaml", SITE_YAML + "  episode_wait_ms: soon\n")
    with pytest.raises(ConfigurationError):
        build_site_profile(load_site_config(path))


def test_bundled_site_profile_loads(caplog):
    with caplog.at_level(logging.INFO):
        profile = load_site_profile(DEFAULT_SITE_CONFIG)
    assert profile.fallback_url == "https://www.paramountplus.com/brands/mtv/"
    assert profile.search_input == 'input[name="q"]'
    assert "[CONFIG] Site profile" in caplog.text
