"""Configuração do motor de intake (env vars / .env).

Defaults mantêm o motor 100% determinístico e sem I/O externo; a capacidade
semântica, o Redis e o webhook só entram quando configurados.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configurações lidas do ambiente.

    Limiares de confiança e janelas de sessão ficam aqui para que o motor
    seja ajustável sem alteração de código.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
    )

    # Aplicação
    service_name: str = "helpdesk_intake"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # OpenAI / capacidade semântica
    openai_enabled: bool = False  # Feature flag: fail-safe false (motor 100% determinístico)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: int = 10
    capability_max_retries: int = 1  # Um único retry, depois fallback
    capability_timeout_seconds: float = 8.0

    # Limiares
    intent_confidence_threshold: float = 0.6
    field_confidence_threshold: float = 0.7
    password_error_text_threshold: float = 0.5
    category_lock_confidence: float = 0.6

    # Gate de submissão
    confirmation_window_turns: int = 1  # Confirmação precisa ser deste turno ou do anterior

    # Sessão
    session_timeout_minutes: int = 30  # Timeout de inatividade
    session_sweep_interval_seconds: int = 300
    session_store_backend: str = "memory"  # memory | redis
    redis_url: str | None = None

    # Entrada
    max_message_length_chars: int = 4096

    # Chamados
    ticket_notifier_backend: str = "memory"  # memory | webhook
    ticket_webhook_url: str | None = None
    ticket_webhook_timeout_seconds: float = 10.0

    @property
    def session_ttl_seconds(self) -> int:
        """TTL de sessão em segundos."""
        return self.session_timeout_minutes * 60

    def validate_openai_config(self) -> list[str]:
        """OPENAI_ENABLED=true exige OPENAI_API_KEY."""
        errors: list[str] = []
        if self.openai_enabled and not self.openai_api_key:
            errors.append("OPENAI_ENABLED=true requer OPENAI_API_KEY configurado")
        if self.capability_max_retries < 0:
            errors.append("CAPABILITY_MAX_RETRIES deve ser >= 0")
        return errors

    def validate_session_store_config(self) -> list[str]:
        """Valida backend de session store por ambiente.

        Em staging/prod, memory é proibido (instâncias múltiplas).
        """
        errors: list[str] = []
        backend = self.session_store_backend.lower()
        valid_backends = {"memory", "redis"}

        if backend not in valid_backends:
            errors.append(
                f"SESSION_STORE_BACKEND '{backend}' inválido. Valores válidos: {valid_backends}"
            )

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append(
                "SESSION_STORE_BACKEND=memory é proibido em staging/production. "
                "Configure 'redis'."
            )

        if backend == "redis" and not self.redis_url:
            errors.append("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")

        if self.session_timeout_minutes <= 0:
            errors.append("SESSION_TIMEOUT_MINUTES deve ser > 0")
        return errors

    def validate_thresholds(self) -> list[str]:
        """Valida que todos os limiares estão entre 0 e 1."""
        errors: list[str] = []
        thresholds = {
            "INTENT_CONFIDENCE_THRESHOLD": self.intent_confidence_threshold,
            "FIELD_CONFIDENCE_THRESHOLD": self.field_confidence_threshold,
            "PASSWORD_ERROR_TEXT_THRESHOLD": self.password_error_text_threshold,
            "CATEGORY_LOCK_CONFIDENCE": self.category_lock_confidence,
        }
        for name, value in thresholds.items():
            if not 0 < value <= 1:
                errors.append(f"{name} deve estar entre 0 e 1")
        if self.confirmation_window_turns < 0:
            errors.append("CONFIRMATION_WINDOW_TURNS deve ser >= 0")
        return errors

    def validate_ticket_notifier(self) -> list[str]:
        """Valida backend de notificação de chamados."""
        errors: list[str] = []
        backend = self.ticket_notifier_backend.lower()
        if backend not in {"memory", "webhook"}:
            errors.append("TICKET_NOTIFIER_BACKEND inválido: use memory | webhook")
        if backend == "webhook":
            if not self.ticket_webhook_url:
                errors.append("TICKET_NOTIFIER_BACKEND=webhook requer TICKET_WEBHOOK_URL")
            elif (self.is_staging or self.is_production) and self.ticket_webhook_url.startswith(
                "http://"
            ):
                errors.append("TICKET_WEBHOOK_URL deve usar https em staging/production")
        return errors

    def validate_all(self) -> list[str]:
        """Executa todas as validações e concatena os erros."""
        return [
            *self.validate_openai_config(),
            *self.validate_session_store_config(),
            *self.validate_thresholds(),
            *self.validate_ticket_notifier(),
        ]

    @property
    def is_production(self) -> bool:
        """production/prod."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_staging(self) -> bool:
        """staging/stage."""
        return self.environment.lower() in ("staging", "stage")

    @property
    def is_development(self) -> bool:
        """development/dev/local (default)."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings."""
    return Settings()
