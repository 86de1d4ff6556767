from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    files_root: str = ""
    fetch_timeout_seconds: int = 30
    max_input_bytes: int = 50 * 1024 * 1024
    max_concurrent_runs: int = 0

    object_detector: str = "example"
    face_detector: str = "example"
    text_detector: str = "example"

    transcription_provider: str = "example"
    transcription_openai_api_key: str = ""
    transcription_openai_model_name: str = "whisper-1"
    transcription_openai_timeout_seconds: int = 120

    silence_threshold: float = 0.01
    silence_frame_samples: int = 1024
    noise_highpass_hz: float = 150.0
    noise_lowpass_hz: float = 1000.0

    pdf_engine: str = "pdfplumber"
    pdf_image_resolution: int = 150

    summary_min_chars: int = 100
    summarization_provider: str = "example"
    summarization_api_key: str = ""
    summarization_model_name: str = ""
    summarization_base_url: str = ""
    summarization_timeout_seconds: int = 60
    summarization_temperature: float = 0.2
