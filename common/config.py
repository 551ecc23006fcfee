from __future__ import annotations

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"


class ConfigurationError(ValueError):
    """Missing or inconsistent configuration; fatal before any fetch."""


class AppConfig(BaseModel):
    cache_dir: Path = Path("data/cache")
    persist_dir: Path = Path("data/chroma")
    collection: str = "contentful"

    timeout: int = 20
    user_agent: str = "ContentfulKnowledge/1.0"
    trace_id: str = "contentful-knowledge"


class ContentfulConfig(BaseModel):
    environment: str = "master"
    content_type_id: str = "article"
    title_field_id: str = "title"
    modules_field_id: str = "body"
    sidebar_field_id: str = "sidebarContent"
    group_field_id: str = "knowledgeGroup"
    sub_topic_tag_prefix: str = "group:"
    main_topic_tag_prefix: str = "topic:"
    additional_tags: List[str] = Field(default_factory=list)
    include_depth: int = Field(default=10, ge=0, le=10)
    page_size: int = Field(default=1000, ge=1, le=1000)


class VectorStoreConfig(BaseModel):
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"


class ChunkingConfig(BaseModel):
    strategy: str = Field(default="recursive", pattern="^(recursive|llm)$")
    max_chunk_size: int = 2000
    chunk_overlap: int = 100


class LLMChunkingConfig(BaseModel):
    endpoint_url: str = ""
    temperature: float = 0.2
    max_tokens: int = 4096
    timeout: int = 120
    prompt: str = "{{text_to_chunk}}"


class GlobalYAMLConfig(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    contentful: ContentfulConfig = Field(default_factory=ContentfulConfig)
    vectorstore: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    llm_chunking: LLMChunkingConfig = Field(default_factory=LLMChunkingConfig)


def load_yaml_config(path: Path = CONFIG_PATH) -> GlobalYAMLConfig:
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    return GlobalYAMLConfig(**raw)


class Secrets(BaseSettings):
    """Credentials read from the environment or a local ``.env`` file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    contentful_space_id: str | None = None
    contentful_access_token: str | None = None
    azure_openai_api_key: str | None = None


yaml_config = load_yaml_config()
secrets = Secrets()
