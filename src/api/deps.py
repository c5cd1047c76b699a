import os
from collections.abc import Callable
from functools import lru_cache, partial
from pathlib import Path

from fastapi import Depends

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.jinja_templates import JinjaTemplateRenderer
from src.adapters.smtp_email import SMTPEmailAdapter
from src.adapters.sqlite_db import SQLiteSubscriptionRepo, SQLiteUnitOfWork
from src.app_shell.config import Environment
from src.components.subscriptions import SubscriptionConfig
from src.core.ports.email import EmailAddress, EmailPort
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.environment = Environment.parse(os.environ.get("NEWSLETTER_ENVIRONMENT", "local"))
        self.data_dir = Path(os.environ.get("NEWSLETTER_DATA_DIR", "./data"))
        self.base_url = os.environ.get("NEWSLETTER_BASE_URL", "http://127.0.0.1:8000")
        self.rules_path = Path(os.environ.get("NEWSLETTER_RULES_PATH", self.base_dir / "rules.yaml"))
        self.migrations_dir = os.environ.get("NEWSLETTER_MIGRATIONS_DIR", "migrations")
        self.log_level = os.environ.get("NEWSLETTER_LOG_LEVEL", "INFO")

        # Email transport
        self.email_backend = os.environ.get("NEWSLETTER_EMAIL_BACKEND", "dev")
        self.smtp_host = os.environ.get("SMTP_HOST", "localhost")
        self.smtp_port = int(os.environ.get("SMTP_PORT", "587"))
        self.smtp_username = os.environ.get("SMTP_USERNAME")
        self.smtp_password = os.environ.get("SMTP_PASSWORD")
        self.smtp_sender = os.environ.get("SMTP_SENDER", "newsletter@localhost")
        self.smtp_use_tls = os.environ.get("SMTP_USE_TLS", "true").lower() == "true"

    def db_path(self, rules: Rules) -> str:
        return str(self.data_dir / rules.storage.db_filename)


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Repos ---
def get_subscription_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SQLiteSubscriptionRepo:
    return SQLiteSubscriptionRepo(
        settings.db_path(rules), busy_timeout=rules.storage.busy_timeout_seconds
    )


def get_unit_of_work_factory(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Callable[[], SQLiteUnitOfWork]:
    """Each call opens a fresh transaction on its own connection."""
    return partial(
        SQLiteUnitOfWork, settings.db_path(rules), rules.storage.busy_timeout_seconds
    )


# --- Email ---
_dev_email_instance: DevEmailAdapter | None = None


def get_email_adapter(settings: Settings = Depends(get_settings)) -> EmailPort:
    """Dev adapter singleton, or a configured SMTP adapter."""
    global _dev_email_instance
    if settings.email_backend == "smtp":
        return SMTPEmailAdapter(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=EmailAddress(settings.smtp_sender),
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    if _dev_email_instance is None:
        _dev_email_instance = DevEmailAdapter()
    return _dev_email_instance


def get_template_renderer(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> JinjaTemplateRenderer:
    return JinjaTemplateRenderer(settings.base_dir / rules.confirmation_email.templates_dir)


def get_subscription_config(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SubscriptionConfig:
    email_rules = rules.confirmation_email
    return SubscriptionConfig(
        base_url=settings.base_url,
        confirmation_path=email_rules.confirmation_path,
        email_subject=email_rules.subject,
        html_template=email_rules.html_template,
        text_template=email_rules.text_template,
    )
