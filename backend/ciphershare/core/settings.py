from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "CipherShare"
    DATABASE_URL: str = "sqlite:///./data/ciphershare.db"

    # Auth Config (tokens are issued by the external auth service)
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"

    # Content store: "local", "ipfs" or "memory"
    CONTENT_STORE: str = "local"
    CONTENT_STORE_PATH: str = "./data/blobs"
    IPFS_API_URL: str = "http://127.0.0.1:5001"
    IPFS_TIMEOUT: int = 30

    # Encryption
    ENCRYPTION_CHUNK_SIZE: int = 64 * 1024
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50MB

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
