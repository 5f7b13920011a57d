from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    CLINIC_NAME: str = "Clínica DIMA"
    SERVICE_NAME: str = "SchuleAgent"
    APP_VERSION: str = "1.0.0"
    CLINIC_TIMEZONE: str = "America/Bogota"

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    STORE_PROVIDER: str = "json"
    DATA_DIR: str = "./data"


settings = Settings()
