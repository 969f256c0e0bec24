"""Shared pytest fixtures and configuration."""

from collections.abc import Callable, Iterator

import pytest
from PIL import Image

from tripstudio.config import Settings
from tripstudio.imaging import SourceImage
from tripstudio.session import EditSession
from tripstudio.utils.logging import clear_correlation_context, configure_logging


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def make_image() -> Callable[..., Image.Image]:
    """Factory for solid-colour RGBA test images."""

    def _make(
        width: int = 400,
        height: int = 300,
        color: tuple[int, int, int, int] = (120, 80, 40, 255),
    ) -> Image.Image:
        return Image.new("RGBA", (width, height), color)

    return _make


@pytest.fixture
def gradient_image() -> Image.Image:
    """400x300 image whose pixels all differ, for orientation checks."""
    image = Image.new("RGBA", (400, 300))
    image.putdata(
        [(x % 256, y % 256, (x + y) % 256, 255) for y in range(300) for x in range(400)]
    )
    return image


@pytest.fixture
def ready_session(make_image: Callable[..., Image.Image]) -> EditSession:
    """Session with an 800x600 source attached (surface 800x600)."""
    session = EditSession(session_id="test-session", pixel_ratio=1.0)
    session.attach_source(SourceImage.from_image(make_image(800, 600)))
    return session
