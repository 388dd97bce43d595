"""Test fakes for probe testing."""

from tests.fakes.fake_codex import (
    DEFAULT_STATUS_SCREEN,
    FakeCodex,
    make_fake_codex,
)

__all__ = [
    "DEFAULT_STATUS_SCREEN",
    "FakeCodex",
    "make_fake_codex",
]
