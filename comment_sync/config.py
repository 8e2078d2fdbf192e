"""
Configuration for comment sync.

Sources, highest priority first:
1. COMMENT_SYNC_* environment variables (a .env file is read into them)
2. YAML config file
3. Model defaults
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from comment_sync.models.work_item import WorkItemCategory


class NotionConfig(BaseModel):
    """Notion API access and database ids."""

    token: str | None = None
    base_url: str = "https://api.notion.com/v1"
    api_version: str = "2022-06-28"
    source_database_id: str | None = None
    target_database_id: str | None = None
    action_database_id: str | None = None
    # Optional: database URL used to build source document links
    source_database_url: str | None = None
    timeout: float = 30.0
    page_size: int = 100
    max_retries: int = 3
    retry_delay: float = 0.5


class PropertySchema(BaseModel):
    """
    Property names and status values used against the document store.

    Each property is named exactly once; no alternative names are tried.
    """

    # Target (card) database
    target_title: str = "卡片笔记"
    target_discussion_id: str = "DiscussionID"
    target_reference: str = "Reference"
    target_classification: str = "它在解决什么问题？"

    # Source (reference) database
    source_title: str = "标题"
    source_status: str = "自动化"
    source_created: str = "创建时间"
    status_unprocessed: str = "未执行"
    status_processed: str = "已执行"

    # Action (work item) database
    task_title: str = "Task"
    task_status: str = "Status"
    task_created: str = "创建时间"
    task_priority: str = "优先级"
    task_deadline: str = "DDL"
    task_reference: str = "Reference"
    task_not_started: str = "未开始"
    task_in_progress: str = "进行中"
    task_done: str = "完成"


class SyncConfig(BaseModel):
    """Pipeline behaviour."""

    write_delay_seconds: float = 1.0
    header_text: str = "Reference"
    display_timezone: str = "Asia/Shanghai"
    task_preview_limit: int = 10
    warning_preview_limit: int = 5


class WorkflowConfig(BaseModel):
    """Work item labels and priorities per category."""

    reference_task_label: str = "Reference处理需求"
    card_task_label: str = "卡片处理需求"
    reference_task_priority: str = "High"
    card_task_priority: str = "Medium"

    def label_for(self, category: WorkItemCategory) -> str:
        if category == WorkItemCategory.REFERENCE_PROCESSING:
            return self.reference_task_label
        return self.card_task_label

    def priority_for(self, category: WorkItemCategory) -> str:
        if category == WorkItemCategory.REFERENCE_PROCESSING:
            return self.reference_task_priority
        return self.card_task_priority


class EmailConfig(BaseModel):
    """SMTP email configuration."""

    smtp_host: str = "smtp.qq.com"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_to: str | None = None
    use_tls: bool = True
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password and self.email_to)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


ENV_PREFIX = "COMMENT_SYNC_"

# section -> field -> environment variable suffix
ENV_FIELDS: dict[str, dict[str, str]] = {
    "notion": {
        "token": "NOTION_TOKEN",
        "base_url": "NOTION_BASE_URL",
        "api_version": "NOTION_API_VERSION",
        "source_database_id": "SOURCE_DATABASE_ID",
        "target_database_id": "TARGET_DATABASE_ID",
        "action_database_id": "ACTION_DATABASE_ID",
        "source_database_url": "SOURCE_DATABASE_URL",
        "timeout": "NOTION_TIMEOUT",
        "page_size": "NOTION_PAGE_SIZE",
        "max_retries": "NOTION_MAX_RETRIES",
        "retry_delay": "NOTION_RETRY_DELAY",
    },
    "sync": {
        "write_delay_seconds": "WRITE_DELAY_SECONDS",
        "header_text": "HEADER_TEXT",
        "display_timezone": "DISPLAY_TIMEZONE",
        "task_preview_limit": "TASK_PREVIEW_LIMIT",
        "warning_preview_limit": "WARNING_PREVIEW_LIMIT",
    },
    "workflow": {
        "reference_task_label": "REFERENCE_TASK_LABEL",
        "card_task_label": "CARD_TASK_LABEL",
    },
    "email": {
        "smtp_host": "SMTP_HOST",
        "smtp_port": "SMTP_PORT",
        "smtp_user": "SMTP_USER",
        "smtp_password": "SMTP_PASSWORD",
        "email_to": "EMAIL_TO",
        "use_tls": "SMTP_USE_TLS",
        "timeout": "SMTP_TIMEOUT",
    },
    "logging": {
        "level": "LOG_LEVEL",
        "log_to_file": "LOG_TO_FILE",
        "log_dir": "LOG_DIR",
        "file_rotation": "LOG_FILE_ROTATION",
        "file_retention": "LOG_FILE_RETENTION",
        "compression": "LOG_COMPRESSION",
        "serialize": "LOG_SERIALIZE",
    },
}


def _convert(value: str, default: Any) -> Any:
    """Convert an environment string to the type of the field default."""
    if isinstance(default, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def _env_overrides(env_file: str | Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Read every COMMENT_SYNC_* variable that is set and non-empty.

    Returns:
        Nested dict shaped like Config, holding only the fields found

    Raises:
        ValueError: If a value cannot be converted to its field type
    """
    if env_file:
        load_dotenv(env_file)
    elif Path(".env").exists():
        load_dotenv()

    defaults = Config()
    overrides: dict[str, dict[str, Any]] = {}
    for section, fields in ENV_FIELDS.items():
        section_defaults = getattr(defaults, section)
        for field, suffix in fields.items():
            value = os.getenv(ENV_PREFIX + suffix)
            if not value:
                continue
            try:
                converted = _convert(value, getattr(section_defaults, field))
            except ValueError as e:
                raise ValueError(f"Invalid value for {ENV_PREFIX + suffix}: {value!r}") from e
            overrides.setdefault(section, {})[field] = converted
    return overrides


class Config(BaseModel):
    """Main configuration."""

    notion: NotionConfig = Field(default_factory=NotionConfig)
    properties: PropertySchema = Field(default_factory=PropertySchema)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        A .env file is loaded first (``env_file`` or ./.env); variables already
        present in the process environment win over it. Unset or empty
        variables keep their defaults. See ENV_FIELDS for the full list; the
        main ones are:

            COMMENT_SYNC_NOTION_TOKEN: Notion integration token
            COMMENT_SYNC_SOURCE_DATABASE_ID: Database holding annotated documents
            COMMENT_SYNC_TARGET_DATABASE_ID: Database receiving one record per thread
            COMMENT_SYNC_ACTION_DATABASE_ID: Database receiving work items
            COMMENT_SYNC_WRITE_DELAY_SECONDS: Delay between consecutive record writes
            COMMENT_SYNC_SMTP_USER / _PASSWORD, COMMENT_SYNC_EMAIL_TO: Notifications
            COMMENT_SYNC_LOG_LEVEL: Log level
        """
        return cls(**_env_overrides(env_file))

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from a YAML file with one mapping per section.

        Raises:
            FileNotFoundError: If the file doesn't exist
            yaml.YAMLError: If the YAML is invalid
        """
        return cls(**_read_yaml(Path(yaml_path)))

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Environment values replace single fields; the rest of a YAML section
        is kept.

        Raises:
            ValueError: If a value is malformed (including pydantic ValidationError)
            yaml.YAMLError: If the YAML is invalid
        """
        data: dict[str, Any] = {}
        if yaml_path and Path(yaml_path).exists():
            data = _read_yaml(Path(yaml_path))

        for section, fields in _env_overrides(env_file).items():
            data[section] = {**(data.get(section) or {}), **fields}
        return cls(**data)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must hold a mapping of sections: {path}")
    return data
