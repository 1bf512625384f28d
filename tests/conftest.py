from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from app.config import AppSettings, LayoutSettings, LLMSettings, ServiceSettings
from domain.errors import UpstreamFailureError


def _clear_pedigree_env() -> None:
    for key in list(os.environ):
        if key.startswith("PEDIGREE_") or key == "OPENAI_API_KEY":
            os.environ.pop(key, None)


_clear_pedigree_env()


@pytest.fixture(autouse=True)
def clear_pedigree_env() -> Generator[None, None, None]:
    _clear_pedigree_env()
    yield
    _clear_pedigree_env()


class FakeNotationGenerator:
    def __init__(self, notation: str = "", error: str | None = None) -> None:
        self.notation = notation
        self.error = error
        self.calls: list[str] = []

    async def generate(self, text: str) -> str:
        self.calls.append(text)
        if self.error is not None:
            raise UpstreamFailureError(self.error, status_code=500)
        return self.notation


@pytest.fixture
def fake_generator_factory() -> Callable[..., FakeNotationGenerator]:
    return FakeNotationGenerator


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        llm=LLMSettings(api_key="test-key", base_url="http://llm.test/v1"),
        layout=LayoutSettings(),
        service=ServiceSettings(title="Test Pedigree"),
    )


@pytest.fixture
def app_settings_factory(app_settings: AppSettings) -> Callable[..., AppSettings]:
    def _factory(**layout_overrides: object) -> AppSettings:
        layout = app_settings.layout.model_copy(update=layout_overrides)
        return app_settings.model_copy(update={"layout": layout})

    return _factory
