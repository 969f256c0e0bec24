"""Tests for tripstudio.config module."""

import pytest
from pydantic import ValidationError

from tripstudio.config import Settings


class TestSettings:
    """Tests for the Settings class."""

    def test_default_values(self) -> None:
        """Test that default values are set correctly."""
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
        )

        # Working surface and export
        assert settings.MAX_SURFACE_WIDTH == 800
        assert settings.MAX_SURFACE_HEIGHT == 800
        assert settings.EXPORT_PIXEL_RATIO == 2.0

        # Filters and crop
        assert settings.BACKGROUND_THRESHOLD == 240
        assert settings.CROP_INSET_RATIO == 0.1
        assert settings.MIN_CROP_SIZE == 5.0
        assert settings.HANDLE_HIT_RADIUS == 15.0

        # Annotations
        assert settings.DEFAULT_COLOR == "#6366f1"
        assert settings.DEFAULT_THICKNESS == 5

    def test_env_var_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that environment variables override defaults."""
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("BACKGROUND_THRESHOLD", "200")

        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
        )

        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.BACKGROUND_THRESHOLD == 200

    def test_env_vars_are_case_sensitive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("max_surface_width", "100")
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
        )
        assert settings.MAX_SURFACE_WIDTH == 800

    def test_invalid_type_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXPORT_PIXEL_RATIO", "sharp")
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,  # type: ignore[call-arg]
            )

    def test_fixture_settings(self, test_settings: Settings) -> None:
        assert test_settings.LOG_LEVEL == "DEBUG"
