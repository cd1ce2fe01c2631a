from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class SecretSettings(BaseModel):
    """Application settings model."""
    app_url: str = Field("http://localhost:8000", description="Public base URL of the application")
    app_key: str = Field(..., min_length=16, description="Secret used to derive the encryption and signing keys")
    default_disk: str = Field("media", description="Disk used when no disk is passed, empty for the storage default")
    default_expiry: int = Field(15, description="Link lifetime in minutes when no override is passed")
    delete_after_download: bool = Field(False, description="Delete files after download unless overridden")
    filesystem_default: str = Field("local", description="Storage subsystem default disk")
    disks: dict[str, str] = Field(default_factory=dict, description="Disk name -> root directory")
    route_path: str = Field("/secret-download", description="Path of the redemption endpoint")
    url_strategy: Literal["proxy", "redirect"] = "proxy"
    proxy_timeout: float = Field(30.0, gt=0, description="Upstream timeout in seconds")
    chunk_size: int = Field(8192, gt=0, description="Streaming chunk size in bytes")
    data_dir: Path = Path("/secret/data")
    cleanup_interval: int = Field(300, gt=0, description="Seconds between claim purges")

    @field_validator("route_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return "/" + value.strip().lstrip("/")

    @property
    def database_path(self) -> Path:
        return self.data_dir / "secretlink.db"
