from pathlib import Path

import pytest
from pydantic import ValidationError

from pirads_composer.settings import (
    ComposerSettings,
    asset_root,
    canvas_policy,
    get_settings,
    output_root,
    reset_settings_cache,
    resolve_asset_path,
)


def test_roots_come_from_environment(asset_dir, output_dir):
    assert asset_root() == asset_dir.resolve()
    assert output_root() == output_dir.resolve()
    assert output_dir.is_dir()


def test_settings_are_cached():
    assert get_settings() is get_settings()


def test_resolve_asset_path(asset_dir, tmp_path):
    assert resolve_asset_path(tmp_path / "abs.png") == tmp_path / "abs.png"
    assert resolve_asset_path(Path("diagram.png")) == (asset_dir / "diagram.png").resolve()


def test_policy_values_from_environment(monkeypatch):
    monkeypatch.setenv("PIRADS_COMPOSER_RESIZE_SENSITIVITY", "0.5")
    monkeypatch.setenv("PIRADS_COMPOSER_MAX_VIEWPORT_WIDTH", "2500")
    reset_settings_cache()

    policy = canvas_policy()
    assert policy.resize_sensitivity == 0.5
    assert policy.max_viewport_width == 2500
    assert policy.viewport_handle_size == 16.0


def test_inverted_bounds_rejected(monkeypatch):
    monkeypatch.setenv("PIRADS_COMPOSER_MIN_VIEWPORT_HEIGHT", "900")
    monkeypatch.setenv("PIRADS_COMPOSER_MAX_VIEWPORT_HEIGHT", "800")
    with pytest.raises(ValidationError):
        ComposerSettings()


def test_missing_asset_root_is_reported(monkeypatch, tmp_path, caplog):
    monkeypatch.setenv("PIRADS_COMPOSER_ASSET_ROOT", str(tmp_path / "nowhere"))
    reset_settings_cache()
    get_settings()
    assert "does not exist" in caplog.text
