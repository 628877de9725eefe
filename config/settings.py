"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel, Field


DEFAULT_SYSTEM_PROMPT = """Eres un psicólogo virtual amable, empático y profesional.
Escuchas atentamente, haces preguntas reflexivas y ofreces apoyo emocional.
Mantén tus respuestas concisas (máximo 200 palabras) pero cálidas."""

DEFAULT_WELCOME_MESSAGE = (
    "👋 Hola, soy tu psicólogo virtual. Estoy aquí para escucharte y ayudarte. "
    "¿En qué puedo ayudarte hoy?"
)


class BotConfig(BaseModel):
    """Mutable generation config, editable at runtime through the config provider."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    welcome_message: str = DEFAULT_WELCOME_MESSAGE
    model: str = "gpt-3.5-turbo"
    max_tokens: int = Field(300, ge=1, le=8000)
    temperature: float = Field(0.7, ge=0.0, le=2.0)


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" or "anthropic"
    llm_model: Optional[str] = None  # Override provider default model

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    telegram_token: Optional[str] = None

    # Durable backends (REST key/value wins over SQLite; neither = in-process only)
    db_path: Optional[str] = None
    kv_rest_url: Optional[str] = None
    kv_rest_token: Optional[str] = None

    # Static reference documentation injected into every prompt
    reference_docs_dir: Optional[str] = None

    # Memory tiers
    history_capacity: int = Field(50, gt=0)
    category_cap: int = Field(5, gt=0)
    summary_interval: int = Field(10, gt=0)
    summary_min_turns: int = Field(5, gt=0)
    clinical_interval: int = Field(10, gt=0)
    diary_context_entries: int = Field(3, ge=0)
    timezone: str = "UTC"  # IANA name used for the conversation-local date

    # Timeouts (seconds)
    generation_timeout: float = Field(30.0, gt=0)
    store_timeout: float = Field(5.0, gt=0)

    # Background work
    background_workers: int = Field(4, gt=0)

    # Outbound text
    signature: str = "💬 Tu psicólogo virtual"
    max_message_length: int = Field(4096, gt=1)

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load secrets and endpoints from environment if not provided
        env_fields = {
            "openai_api_key": "OPENAI_API_KEY",
            "anthropic_api_key": "ANTHROPIC_API_KEY",
            "telegram_token": "TELEGRAM_TOKEN",
            "db_path": "MEMORY_DB_PATH",
            "kv_rest_url": "KV_REST_API_URL",
            "kv_rest_token": "KV_REST_API_TOKEN",
            "reference_docs_dir": "REFERENCE_DOCS_DIR",
        }
        for field_name, env_name in env_fields.items():
            if data.get(field_name) is None:
                data[field_name] = os.environ.get(env_name)

        if "llm_provider" not in data and os.environ.get("LLM_PROVIDER"):
            data["llm_provider"] = os.environ["LLM_PROVIDER"]
        if data.get("llm_model") is None and os.environ.get("LLM_MODEL"):
            data["llm_model"] = os.environ["LLM_MODEL"]
        if "timezone" not in data and os.environ.get("MEMORY_TIMEZONE"):
            data["timezone"] = os.environ["MEMORY_TIMEZONE"]

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None
