from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    env: str = "dev"
    secret_key: str = "change_me_super_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12
    database_url: str = "postgresql+psycopg2://caixa:caixa@db:5432/caixa"
    backend_cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Regras do caixa
    admin_store_id: str = "admin"
    operator_name_required_stores: str = "capao,admin"
    edit_window_days: int = 7
    report_default_days: int = 7

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        origins = self.backend_cors_origins
        return [origin.strip() for origin in origins.split(",") if origin.strip()]

    @property
    def operator_name_stores(self) -> set[str]:
        return {s.strip() for s in self.operator_name_required_stores.split(",") if s.strip()}

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
