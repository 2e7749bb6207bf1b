from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    POSTGRES_URL: str = Field(..., env="POSTGRES_URL")
    SQL_ECHO: bool = Field(default=False, env="SQL_ECHO")
    MONGO_URL: str = Field(..., env="MONGO_URL")
    MONGO_DB: str = Field(..., env="MONGO_DB")

    JWT_SECRET: str = Field(..., env="JWT_SECRET")
    ALGORITHM: str = Field(default="HS256", env="ALGORITHM")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7, env="ACCESS_TOKEN_EXPIRE_MINUTES")
    BCRYPT_ROUNDS: int = Field(default=12, env="BCRYPT_ROUNDS")

    MAIL_USERNAME: str = Field(default="", env="MAIL_USERNAME")
    MAIL_PASSWORD: str = Field(default="", env="MAIL_PASSWORD")
    MAIL_FROM: str = Field(default="no-reply@altitudevision.cg", env="MAIL_FROM")
    MAIL_PORT: int = Field(default=587, env="MAIL_PORT")
    MAIL_SERVER: str = Field(default="localhost", env="MAIL_SERVER")
    ADMIN_NOTIFICATION_EMAIL: str = Field(default="contact@altitudevision.cg", env="ADMIN_NOTIFICATION_EMAIL")

    FRONTEND_URL: str = Field(default="http://localhost:5173", env="FRONTEND_URL")
    UPLOAD_DIR: str = Field(default="static/uploads", env="UPLOAD_DIR")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
