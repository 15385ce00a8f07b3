"""Configuration management for the invoice extraction service.

Loads and validates YAML configuration with sensible defaults
for preprocessing, rendering, the job queue, and the board API.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PreprocessingConfig(BaseModel):
    """Configuration for the preprocessing strategy table."""

    large_image_threshold: int = 2000
    downscale_targets: list[int] = Field(default_factory=lambda: [1600, 1200, 800])


class RenderConfig(BaseModel):
    """Configuration for PDF page rendering."""

    pdf_scales: list[float] = Field(
        default_factory=lambda: [4.0, 3.5, 3.0, 2.5, 2.0]
    )
    timeout_s: int = 120


class QueueConfig(BaseModel):
    """Configuration for the bounded job queue."""

    max_workers: int = 2
    inter_job_delay_s: float = 0.5
    upload_dir: str = "uploads"


class MondayConfig(BaseModel):
    """Configuration for the board GraphQL API used as source and sink."""

    api_url: str = "https://api.monday.com/v2"
    api_token: str | None = None
    api_version: str = "2024-01"
    timeout_s: float = 30.0
    retries: int = 3
    retry_delay_s: float = 1.0
    asset_cache_ttl_s: float = 3600.0
    file_column: str = "arquivos"
    status_column: str = "color_mkwb6j7j"
    done_label: str = "Feito"
    trigger_columns: list[str] = Field(
        default_factory=lambda: ["button_mkwbdw8s", "color_mkwb6j7j"]
    )
    column_map: dict[str, str] = Field(
        default_factory=lambda: {
            "total_value": "numeric_mkwbrpmz",
            "invoice_number": "text_mkwb4nns",
            "supplier_name": "text_mkwbcyg3",
            "customer_tax_id": "text_mkwbb9",
        }
    )


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    monday: MondayConfig = Field(default_factory=MondayConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
