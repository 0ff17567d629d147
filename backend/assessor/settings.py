from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Text-generation model used for writing/speaking/placement scoring
	gemini_model: str = Field(default="gemini-1.5-pro", validation_alias="GEMINI_MODEL")
	gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta", validation_alias="GEMINI_BASE_URL")
	gemini_timeout_seconds: float = Field(default=30, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# Transcription provider (AssemblyAI-compatible upload/transcript API)
	transcription_api_key: str | None = Field(default=None, validation_alias="ASSEMBLYAI_API_KEY")
	transcription_base_url: str = Field(default="https://api.assemblyai.com/v2", validation_alias="TRANSCRIPTION_BASE_URL")
	transcription_poll_interval: float = Field(default=3.0, ge=0, validation_alias="TRANSCRIPTION_POLL_INTERVAL")
	transcription_max_polls: int = Field(default=100, ge=1, validation_alias="TRANSCRIPTION_MAX_POLLS")
	transcription_deadline_seconds: float = Field(default=300, validation_alias="TRANSCRIPTION_DEADLINE_SECONDS")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	# Optimistic-concurrency retries for the progress record
	progress_write_attempts: int = Field(default=3, validation_alias="PROGRESS_WRITE_ATTEMPTS")

	# Longer writing samples are truncated before prompting
	max_writing_chars: int = Field(default=8000, validation_alias="MAX_WRITING_CHARS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# uvicorn bind address when launched with `python -m assessor.main` or the `assessor` script
	host: str = Field(default="127.0.0.1", validation_alias="HOST")
	port: int = Field(default=8000, validation_alias="PORT")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
