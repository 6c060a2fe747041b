"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Study Buddy settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        app_root_folder: Top-level folder created in the user's drive.
        semester_term: Academic term label appended to the year ("2024_Spring").
        network_timeout: Upper bound in seconds for every remote call.
        tick_interval: Period of the elapsed-time display tick.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Folder hierarchy ---
    app_root_folder: str = "Study Buddy"
    semester_term: str = "Spring"

    # --- Capture ---
    # Fixed by the capture format: AAC-LC mono in an MPEG-4 container
    recordings_dir: str = "data/recordings"
    audio_sample_rate: int = 22050
    audio_bit_rate: int = 64000
    audio_channels: int = 1
    audio_extension: str = "m4a"
    tick_interval: float = 1.0  # Seconds between elapsed-time display updates

    # --- Network ---
    network_timeout: float = 60.0

    # --- Object store + index (Firebase) ---
    object_key_prefix: str = "audio"
    lectures_collection: str = "lectures"
    ai_jobs_collection: str = "aiJobs"
    firebase_storage_bucket: str = ""
    firebase_project_id: str = ""
    firebase_storage_url: str = "https://firebasestorage.googleapis.com/v0"
    firestore_url: str = "https://firestore.googleapis.com/v1"

    # --- Hierarchical store (Google Drive) ---
    drive_api_url: str = "https://www.googleapis.com/drive/v3"
    drive_upload_url: str = "https://www.googleapis.com/upload/drive/v3"

    # --- Application ---
    log_level: str = "INFO"  # Python logging level


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
