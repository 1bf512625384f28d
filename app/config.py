from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.grid import LayoutConfig
from domain.models import LayoutStrategy, Orientation, Size
from domain.services.input_validation import MAX_INPUT_LENGTH

DEFAULT_CONFIG_PATH = Path("config/app.yaml")


def _split_origins(raw_value: str) -> list[str]:
    raw = raw_value.strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1]
    return [
        token for token in (part.strip().strip("'").strip('"') for part in raw.split(",")) if token
    ]


class LLMSettings(BaseModel):
    api_key: str | None = None
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    timeout_seconds: float = 60.0


class LayoutSettings(BaseModel):
    strategy: LayoutStrategy = "hierarchical"
    orientation: Orientation = "TB"
    node_width: float = 150.0
    node_height: float = 36.0
    sibling_spacing: float = 40.0
    generation_spacing: float = 80.0
    next_spacing: float = 20.0
    flexible_spacing: bool = True

    @field_validator("orientation", mode="before")
    @classmethod
    def normalize_orientation(cls, value: object) -> str:
        raw = str(value or "TB").strip().upper()
        return {"TD": "TB", "BT": "TB", "RL": "LR"}.get(raw, raw)

    def to_layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            node_size=Size(self.node_width, self.node_height),
            sibling_spacing=self.sibling_spacing,
            generation_spacing=self.generation_spacing,
            next_spacing=self.next_spacing,
            flexible_spacing=self.flexible_spacing,
        )


class ServiceSettings(BaseModel):
    title: str = "Pedigree Drawer"
    max_input_length: int = Field(default=MAX_INPUT_LENGTH, gt=0)
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_origins(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return _split_origins(value)
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return _split_origins(str(value))


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PEDIGREE_", env_nested_delimiter="__")

    llm: LLMSettings = LLMSettings()
    layout: LayoutSettings = LayoutSettings()
    service: ServiceSettings = ServiceSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("PEDIGREE_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        settings = AppSettings()
    finally:
        AppSettings._yaml_path = previous

    fallback_key = os.getenv("OPENAI_API_KEY")
    if not settings.llm.api_key and fallback_key:
        llm = settings.llm.model_copy(update={"api_key": fallback_key})
        settings = settings.model_copy(update={"llm": llm})
    return settings
