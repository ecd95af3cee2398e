from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    strava_client_id: str = ""
    strava_client_secret: str = ""
    strava_verify_token: str = ""
    strava_refresh_token: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    clawdbot_gateway_url: str = "http://127.0.0.1:18789"
    clawdbot_hook_token: str = ""
    send_raw_telegram: bool = False
    store_path: str = "./activity-store.jsonl"
    state_path: str = "./state.json"
    poll_enabled: bool = True
    poll_interval_sec: int = 600
    poll_lookback_hours: int = 24
    poll_page_limit: int = 4
    history_limit: int = 2500  # records scanned when looking for last week's match
    port: int = 3009
    request_timeout_s: float = 15.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
