"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
注意：这里的 settings 只服务于日志和工厂函数；StreamSession 本身只接收
显式传入的 SessionConfig，不读取任何进程级全局配置。
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
    explicit = os.getenv("ASKAI_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
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
    """配置设置（使用 Pydantic）。"""

    # ---- Ask AI 后端 ----
    askai_base_url: str = Field(
        default="http://localhost:9000/api/v1",
        description="Ask AI 后端基础URL，订阅地址为 <base>/askai/subscribe",
    )
    askai_auth_token: Optional[str] = Field(default=None, description="authorization 请求头的值")
    askai_language: Literal["en", "ar"] = Field(default="en", description="请求语言")

    # ---- 流式连接 ----
    http_connect_timeout: float = Field(default=30.0, ge=1.0, description="建立连接的超时时间（秒），读超时始终为无限")
    stream_retry_enabled: bool = Field(default=True, description="连接失败后是否自动重连")
    stream_retry_delay: float = Field(default=3.0, ge=0.0, le=300.0, description="重连前的固定等待时间（秒）")
    stream_retry_max_attempts: Optional[int] = Field(
        default=None,
        ge=1,
        description="连续重连的最大次数，为空表示不限次数",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("askai_auth_token")
    @classmethod
    def validate_auth_token(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v.strip()) < 10:
            raise ValueError("auth token seems too short")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

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
