"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("HEALTHSYNC_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """HealthSync 配置（使用 Pydantic）。"""

    # ---- 聊天端点 ----
    default_provider: Literal["local", "openai"] = Field(
        default="local",
        description="聊天端点：local 为知识库代理，openai 为远程 LLM",
    )
    chat_api_key: Optional[str] = Field(default=None, description="远程 LLM API 密钥")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI 兼容 API 基础URL",
    )
    local_base_url: str = Field(
        default="http://localhost:3001",
        description="本地知识库代理基础URL",
    )
    chat_model: str = Field(default="gpt-4o-mini", description="请求体中的 model 字段")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=500, ge=1)

    # ---- 超时与重试 ----
    http_timeout: float = Field(default=30.0, ge=1.0, description="聊天请求超时（秒）")
    health_timeout: float = Field(default=5.0, gt=0.0, description="存活探测超时（秒）")
    probe_interval: float = Field(default=30.0, gt=0.0, description="存活探测间隔（秒）")
    max_attempts: int = Field(default=3, ge=1, le=10, description="单次提交的最大尝试次数")
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=10000, ge=0)
    search_notify_delay: float = Field(default=0.5, ge=0.0, description="关键字命中后触发地图搜索的延迟（秒）")

    # ---- 存储与日志 ----
    history_limit: int = Field(default=20, ge=1, le=100, description="会话存储保留的消息条数")
    storage_root: str = Field(default=".storage", description="持久存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- 医疗机构定位 ----
    places_api_key: Optional[str] = Field(default=None, description="Google Places API 密钥")
    places_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place",
        description="Places API 基础URL",
    )
    geolocation_timeout: float = Field(default=10.0, gt=0.0, description="定位超时（秒）")

    # ---- 知识库服务 ----
    server_host: str = Field(default="127.0.0.1")
    server_port: int = Field(default=3001, ge=1, le=65535)
    frontend_url: str = Field(default="http://localhost:8081", description="CORS 允许的前端来源")

    model_config = SettingsConfigDict(
        env_prefix="HEALTHSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("chat_api_key", "places_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
