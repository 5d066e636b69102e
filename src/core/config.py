from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "flowgraph-studio"

    env: str = "development"
    LOG_LEVEL: str = "INFO"

    # Remote catalog / persistence collaborator
    CATALOG_API_URL: str = "http://localhost:3000/api/sftp"
    CATALOG_API_KEY: str = ""
    CATALOG_REQUEST_TIMEOUT: float = 30.0
    CATALOG_MAX_CONCURRENCY: int = 8

    # Layout constants (pixels)
    LAYOUT_ORIGIN_X: float = 50.0
    LAYOUT_ORIGIN_Y: float = 50.0
    LAYOUT_GUTTER: float = 80.0
    LAYOUT_STEP_WIDTH: float = 220.0
    LAYOUT_STEP_HEIGHT: float = 56.0
    LAYOUT_STEP_SPACING: float = 12.0
    LAYOUT_PADDING: float = 16.0
    LAYOUT_HEADER_HEIGHT: float = 40.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
