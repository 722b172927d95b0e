from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# OpenAI-compatible chat completion gateway
	gateway_api_key: str | None = Field(default=None, validation_alias="LOVABLE_API_KEY")
	gateway_url: str = Field(default="https://ai.gateway.lovable.dev/v1/chat/completions", validation_alias="AI_GATEWAY_URL")
	gateway_model: str = Field(default="google/gemini-2.5-flash", validation_alias="AI_GATEWAY_MODEL")
	gateway_timeout_seconds: float = Field(default=120.0, validation_alias="AI_GATEWAY_TIMEOUT")
	chat_temperature: float = Field(default=0.7, validation_alias="AI_CHAT_TEMPERATURE")
	generate_temperature: float = Field(default=0.8, validation_alias="AI_GENERATE_TEMPERATURE")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# File storage (local bucket directory)
	storage_dir: str = Field(default="./storage", validation_alias="STORAGE_DIR")
	storage_bucket: str = Field(default="competition-files", validation_alias="STORAGE_BUCKET")
	storage_public_url: str = Field(default="/files", validation_alias="STORAGE_PUBLIC_URL")
	materials_max_bytes: int = Field(default=50 * 1024 * 1024, validation_alias="MATERIALS_MAX_BYTES")
	evidence_max_bytes: int = Field(default=100 * 1024 * 1024, validation_alias="EVIDENCE_MAX_BYTES")

	cors_origins: list[str] = Field(default=["*"], validation_alias="CORS_ORIGINS")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
