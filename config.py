"""Runtime settings, read once from the environment (and ``.env``)."""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///pickdriver.db"
    discord_bot_token: Optional[str] = None
    discord_application_id: Optional[str] = None
    guild_id: Optional[str] = None
    draft_webhook_url: Optional[str] = None
    sweep_interval_seconds: int = 60
    first_half_offset_hours: int = 36
    teammate_window_minutes: int = 60
    ban_credits_solo: int = 2
    ban_credits_team: int = 3
    maintenance_mode: bool = False


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings.database_url),
        discord_bot_token=os.getenv("DISCORD_BOT_TOKEN"),
        discord_application_id=os.getenv("DISCORD_APPLICATION_ID"),
        guild_id=os.getenv("GUILD_ID"),
        draft_webhook_url=os.getenv("DRAFT_WEBHOOK_URL"),
        sweep_interval_seconds=int(os.getenv("SWEEP_INTERVAL_SECONDS", Settings.sweep_interval_seconds)),
        first_half_offset_hours=int(os.getenv("FIRST_HALF_OFFSET_HOURS", Settings.first_half_offset_hours)),
        teammate_window_minutes=int(os.getenv("TEAMMATE_WINDOW_MINUTES", Settings.teammate_window_minutes)),
        ban_credits_solo=int(os.getenv("BAN_CREDITS_SOLO", Settings.ban_credits_solo)),
        ban_credits_team=int(os.getenv("BAN_CREDITS_TEAM", Settings.ban_credits_team)),
        maintenance_mode=_flag(os.getenv("MAINTENANCE_MODE")),
    )
