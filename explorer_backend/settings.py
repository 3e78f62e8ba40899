"""
Runtime configuration read from environment variables.
"""
import os

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ("false", "0", "no", "off")


class Settings(BaseModel):
    """Server and scheduling settings."""
    host: str = "127.0.0.1"
    port: int = 8765
    cors_origins: list[str] = Field(default_factory=lambda: [
        "http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"
    ])
    frame_interval: float = 1 / 60   # Seconds between layout frames
    ticks_per_frame: int = 1
    include_scalars: bool = True     # Show custom scalar declarations as nodes
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = os.getenv("SCHEMAGRAPH_CORS_ORIGINS")
        return cls(
            host=os.getenv("SCHEMAGRAPH_HOST", defaults.host),
            port=int(os.getenv("SCHEMAGRAPH_PORT", str(defaults.port))),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
            frame_interval=float(os.getenv("SCHEMAGRAPH_FRAME_INTERVAL", str(defaults.frame_interval))),
            ticks_per_frame=int(os.getenv("SCHEMAGRAPH_TICKS_PER_FRAME", str(defaults.ticks_per_frame))),
            include_scalars=_env_bool("SCHEMAGRAPH_INCLUDE_SCALARS", defaults.include_scalars),
            log_level=os.getenv("SCHEMAGRAPH_LOG_LEVEL", defaults.log_level).upper(),
        )


settings = Settings.from_env()
