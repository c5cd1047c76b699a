from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class ConfirmationEmailRules(BaseModel):
    subject: str = "Welcome!"
    confirmation_path: str = "/subscriptions/confirm"
    templates_dir: str = "templates"
    html_template: str = "welcome.html"
    text_template: str = "welcome.txt"


class StorageRules(BaseModel):
    db_filename: str = "newsletter.db"
    busy_timeout_seconds: float = Field(default=5.0, gt=0)


class OpsRules(BaseModel):
    # environment name -> env vars that must be set before startup
    required_env: dict[str, list[str]] = Field(default_factory=dict)


class Rules(BaseModel):
    project: ProjectRules
    confirmation_email: ConfirmationEmailRules = Field(default_factory=ConfirmationEmailRules)
    storage: StorageRules = Field(default_factory=StorageRules)
    ops: OpsRules = Field(default_factory=OpsRules)
