from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Claude API
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    completion_max_tokens: int = 2048

    # Generation (advisory bounds, only used in the instruction text)
    min_news_items: int = 5
    max_news_items: int = 7

    # Resend
    resend_api_key: str = ""

    # Newsletter
    newsletter_from_email: str = "newsletter@example.com"
    newsletter_from_name: str = "AI Weekly Roundup"
    newsletter_subject: str = "Your AI Weekly Roundup!"
    default_template: str = "creative-featured"
    templates_dir: str = ""

    # Recipients
    # RECIPIENT_EMAILS is the legacy single list; it becomes the "default" group.
    recipient_emails: str = ""
    # RECIPIENT_GROUPS='{"testing-only": "me@example.com", "team": "a@example.com,b@example.com"}'
    # A group may also be a JSON list: '{"ops": ["a@example.com", "b@example.com"]}'
    recipient_groups: dict[str, str | list[str]] = {}
    default_recipient_group: str = "default"

    # Web
    host: str = "0.0.0.0"
    port: int = 3000
    cors_allow_origins: str = "*"

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]
        return origins or ["*"]


settings = Settings()
