from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="DIMMING_", extra="ignore")

    app_name: str = "DC Dimming Controller"
    timezone: str = "UTC"

    # Logging
    log_level: str = "INFO"
    log_file: str = "dimming.log"

    # Storage: "memory" keeps settings for the process lifetime only
    store_mode: str = "sqlite"
    sqlite_path: str = Field(default="dimming.db")

    # Output node: "sim" or "sysfs"
    output_mode: str = "sim"
    output_node: str = "/sys/class/backlight/panel0-backlight/dc_dimming"

    # Brightness source: "sim" or "sysfs"
    brightness_mode: str = "sim"
    backlight_dir: str = "/sys/class/backlight/panel0-backlight"
    brightness_poll_seconds: float = 0.5
    sim_initial_brightness: int = 128

    # Recomputation timers
    brightness_interval_seconds: float = 10.0
    time_interval_seconds: float = 21.0
    brightness_screen_on_delay_seconds: float = 2.5
    time_screen_on_delay_seconds: float = 5.0
    screen_on_settle_seconds: float = 0.3

    # HTTP
    host: str = "127.0.0.1"
    port: int = 8080


settings = Settings()
