from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml


DEFAULT_CONFIG_FILE_NAME = "config.yaml"

DEFAULT_PLATFORM_FEE_RATE = 0.10
DEFAULT_TIMEZONE = "Asia/Shanghai"
DEFAULT_DAILY_QUOTA_LIMIT = 0


@dataclass(slots=True)
class DownloadConfig:
    platform_fee_rate: float
    timezone: str
    default_daily_quota_limit: int

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(slots=True)
class AppConfig:
    """download-service 설정 루트."""

    download: DownloadConfig


def _find_config_path() -> Path:
    """작업 디렉토리에서 상위로 올라가며 config.yaml 을 찾는다."""

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate

    raise RuntimeError(
        f"{DEFAULT_CONFIG_FILE_NAME} not found. Place config.yaml in project root.",
    )


def load_download_config(path: Path | None = None) -> DownloadConfig:
    path = path or _find_config_path()
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    section = data.get("download") or {}

    raw_fee = section.get("platform_fee_rate", DEFAULT_PLATFORM_FEE_RATE)
    try:
        fee_rate = float(raw_fee)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(
            f"invalid download.platform_fee_rate in {path}: {raw_fee!r}",
        ) from exc
    if not 0.0 <= fee_rate <= 1.0:
        raise RuntimeError(
            f"download.platform_fee_rate must be within [0, 1] in {path}: {fee_rate}",
        )

    tz_name = str(section.get("timezone") or DEFAULT_TIMEZONE).strip()
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"unknown download.timezone in {path}: {tz_name!r}") from exc

    raw_limit = section.get("default_daily_quota_limit", DEFAULT_DAILY_QUOTA_LIMIT)
    try:
        default_limit = int(raw_limit)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(
            f"invalid download.default_daily_quota_limit in {path}: {raw_limit!r}",
        ) from exc
    if default_limit < 0:
        raise RuntimeError(
            f"download.default_daily_quota_limit must not be negative in {path}",
        )

    return DownloadConfig(
        platform_fee_rate=fee_rate,
        timezone=tz_name,
        default_daily_quota_limit=default_limit,
    )


def load_config(path: Path | None = None) -> AppConfig:
    """download-service 설정을 로드하여 AppConfig 로 반환한다."""

    return AppConfig(download=load_download_config(path))


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """프로세스당 한 번만 읽는 설정 (FastAPI DI 용)."""

    return load_config()
