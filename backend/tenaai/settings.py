from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	gemini_model: str = Field(default="gemini-2.0-flash", validation_alias="GEMINI_MODEL")
	# Optional full generateContent URL override (proxies, regional endpoints)
	gemini_base_url: str | None = Field(default=None, validation_alias="GEMINI_BASE_URL")
	gemini_timeout_seconds: float = Field(default=60.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# Google Cloud Text-to-Speech (REST, API key). Speech-to-text uses application default credentials.
	google_tts_api_key: str | None = Field(default=None, validation_alias="GOOGLE_TTS_API_KEY")
	google_tts_url: str = Field(default="https://texttospeech.googleapis.com/v1/text:synthesize", validation_alias="GOOGLE_TTS_URL")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Quiz lifecycle
	quiz_max_questions: int = Field(default=20, validation_alias="QUIZ_MAX_QUESTIONS")
	quiz_history_default_limit: int = Field(default=20, validation_alias="QUIZ_HISTORY_DEFAULT_LIMIT")
	# Ungraded sessions older than this are purged; 0 keeps them forever
	quiz_session_ttl_days: int = Field(default=7, validation_alias="QUIZ_SESSION_TTL_DAYS")

	# Per-client request limit on /api routes (fixed window)
	rate_limit_enabled: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
	rate_limit_window_seconds: int = Field(default=900, validation_alias="RATE_LIMIT_WINDOW_SECONDS")
	rate_limit_max_requests: int = Field(default=100, validation_alias="RATE_LIMIT_MAX_REQUESTS")

	# Analytics windows
	analytics_history_window: int = Field(default=50, validation_alias="ANALYTICS_HISTORY_WINDOW")
	analytics_activity_window: int = Field(default=30, validation_alias="ANALYTICS_ACTIVITY_WINDOW")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def cors_origin_list(self) -> list[str]:
		return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
