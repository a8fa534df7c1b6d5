"""Application configuration via environment variables."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Artifact storage
    processing_root: str = "."
    database_path: str = "taskIDs.sqlite"
    input_extension: str = "mp4"
    output_extension: str = "webm"

    # Task processing
    max_concurrent_tasks: int = 1
    max_upload_bytes: int = 50 * 1024 * 1024
    upload_chunk_bytes: int = 1024 * 1024

    # Color analysis / color-key transform
    frame_sample_rate: float = 1.0
    chroma_similarity: float = 0.2
    chroma_blend: float = 0.2
    output_size: int = 800

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    ssl_keyfile: Optional[str] = None
    ssl_certfile: Optional[str] = None
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
