from functools import lru_cache
from typing import Optional
from dotenv import load_dotenv
from pydantic_settings import BaseSettings


load_dotenv()

class Settings(BaseSettings):
    github_token: Optional[str] = None
    github_timeout: float = 15.0
    # GitHub default page is 30; only one page is ever requested.
    commits_per_page: int = 30

    anthropic_api_key: Optional[str] = None
    rewrite_model: str = "claude-sonnet-4-20250514"
    rewrite_max_tokens: int = 512
    rewrite_max_diff_chars: int = 20000

    log_level: str = "INFO"

    class Config:
        # No prefix so GITHUB_TOKEN / ANTHROPIC_API_KEY in .env are read as-is.
        env_prefix = ""
        case_sensitive = False

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
