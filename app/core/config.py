from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    SQL_ECHO: bool = False

    SECRET_KEY: str
    ALGORITHM: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # OpenAI-compatible chat completions endpoint
    AI_API_URL: str
    AI_API_KEY: str
    AI_MODEL: str = "sonar"
    AI_TIMEOUT_SECONDS: float = 30.0
    AI_QUERY_TEMPERATURE: float = 0.1
    AI_NARRATION_TEMPERATURE: float = 0.7
    AI_MAX_TOKENS: int = 500

    CHAT_HISTORY_LIMIT: int = 10
    CURRENCY_SYMBOL: str = "₹"

    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
