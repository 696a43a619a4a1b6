from dataclasses import dataclass
from functools import lru_cache

from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    endpoint: str
    model: str
    credential_env: str
    api_key: str = ""
    key_url: str = ""
    supports_tools: bool = False

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def setup_hint(self) -> str:
        return f"{self.credential_env} - Get from {self.key_url}"


@dataclass(frozen=True)
class SearchConfig:
    endpoint: str
    api_key: str = ""
    search_depth: str = "advanced"
    max_results: int = 5
    timeout: float = 30.0


@dataclass(frozen=True)
class ChatConfig:
    """Resolved, immutable settings for the chat pipeline."""

    primary: ProviderConfig
    fallback: ProviderConfig
    search: SearchConfig
    temperature: float = 0.7
    max_tokens: int = 2048
    provider_timeout: float = 60.0
    word_delay: float = 0.03

    @property
    def any_provider_configured(self) -> bool:
        return self.primary.configured or self.fallback.configured

    def setup_hints(self) -> dict[str, str]:
        return {
            "primary": self.primary.setup_hint,
            "fallback": self.fallback.setup_hint,
        }


class Settings(BaseSettings):
    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "painpoints"
    postgres_user: str = "painpoints"
    db_password: str = "changeme"

    # Primary provider (DeepSeek)
    deepseek_api_key: str = ""
    deepseek_endpoint: str = "https://api.deepseek.com/v1/chat/completions"
    deepseek_model: str = "deepseek-chat"

    # Fallback provider (Together AI)
    together_api_key: str = ""
    together_endpoint: str = "https://api.together.xyz/v1/chat/completions"
    together_model: str = "meta-llama/Llama-3.3-70B-Instruct-Turbo"

    # Web search (Tavily)
    tavily_api_key: str = ""
    tavily_endpoint: str = "https://api.tavily.com/search"
    search_depth: str = "advanced"
    search_max_results: int = 5
    search_timeout: float = 30.0

    # Chat
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2048
    provider_timeout: float = 60.0
    stream_word_delay: float = 0.03

    # App
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.db_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def chat_config(self) -> ChatConfig:
        return ChatConfig(
            primary=ProviderConfig(
                name="deepseek",
                endpoint=self.deepseek_endpoint,
                model=self.deepseek_model,
                credential_env="DEEPSEEK_API_KEY",
                api_key=self.deepseek_api_key.strip(),
                key_url="https://platform.deepseek.com/api_keys",
                supports_tools=True,
            ),
            fallback=ProviderConfig(
                name="together",
                endpoint=self.together_endpoint,
                model=self.together_model,
                credential_env="TOGETHER_API_KEY",
                api_key=self.together_api_key.strip(),
                key_url="https://api.together.xyz/settings/api-keys",
            ),
            search=SearchConfig(
                endpoint=self.tavily_endpoint,
                api_key=self.tavily_api_key.strip(),
                search_depth=self.search_depth,
                max_results=self.search_max_results,
                timeout=self.search_timeout,
            ),
            temperature=self.llm_temperature,
            max_tokens=self.llm_max_tokens,
            provider_timeout=self.provider_timeout,
            word_delay=self.stream_word_delay,
        )

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
