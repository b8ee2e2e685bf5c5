from pathlib import Path
import os
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class RelaySettings(BaseSettings):
    model_config = SettingsConfigDict(
        # Priority: environment variables > .env file
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # Backstop sweep for expired content; per-item timers do the normal removal.
    RELAY_SWEEP_INTERVAL_SECONDS: float = 60
    RELAY_ROOM_HISTORY_LIMIT: int = 100
    # Unset keeps empty rooms (and their history) for the life of the process.
    RELAY_ROOM_IDLE_GRACE_SECONDS: Optional[float] = None
    RELAY_KEEP_DIRECT_HISTORY: bool = True

    GEOCODER_URL: str = "https://apis.map.qq.com/ws/place/v1/suggestion"
    GEOCODER_KEY: Optional[str] = None
    GEOCODER_REGION: str = "全国"
    GEOCODER_TIMEOUT_SECONDS: float = 10


try:
    from dotenv import load_dotenv

    current_dir = Path(__file__).resolve().parent
    env_paths = [
        current_dir.parent.parent / ".env",  # repo root
        Path(os.getcwd()) / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            break
    else:
        load_dotenv(override=False)
except Exception:
    pass

config = RelaySettings()
