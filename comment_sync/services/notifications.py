"""
Notification payload builders.

Four kinds: a reminder (new work item created) and a warning (an unresolved
work item blocks creation), each for both work item categories. Payloads carry
markdown and an HTML rendering of it; delivery is the notifier's concern.
"""

import html
import re
from datetime import UTC, datetime

from comment_sync.config import PropertySchema, SyncConfig, WorkflowConfig
from comment_sync.models.results import NotificationPayload
from comment_sync.models.work_item import BacklogEntry, WorkItem, WorkItemCategory
from comment_sync.services.templates import entry_details, status_display, template_for
from comment_sync.utils.formatting import compact_timestamp, format_datetime

FOOTER = "*此邮件由Notion评论同步系统自动生成*"

# Applied in order, after HTML escaping
_MARKDOWN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^### (.*)$", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"^## (.*)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^# (.*)$", re.MULTILINE), r"<h1>\1</h1>"),
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"\[([^\]]+)\]\(([^)]+)\)"), r'<a href="\2">\1</a>'),
)


def markdown_to_html(markdown: str) -> str:
    """
    Minimal markdown to HTML conversion for notification bodies.

    Supports headings (h1-h3), bold, italic, links and line breaks. Text is
    HTML-escaped before conversion.
    """
    converted = html.escape(markdown)
    for pattern, replacement in _MARKDOWN_RULES:
        converted = pattern.sub(replacement, converted)
    return converted.replace("\n", "<br>")


class NotificationBuilder:
    """Builds reminder and warning payloads for both categories."""

    def __init__(
        self,
        workflow: WorkflowConfig | None = None,
        properties: PropertySchema | None = None,
        sync: SyncConfig | None = None,
    ):
        self.workflow = workflow or WorkflowConfig()
        self.properties = properties or PropertySchema()
        self.sync = sync or SyncConfig()

    def _entry_section(
        self, category: WorkItemCategory, entries: list[BacklogEntry]
    ) -> list[str]:
        lines: list[str] = []
        for index, entry in enumerate(entries, 1):
            lines.append(f"### {index}. {entry.title}")
            for label, value in entry_details(category, entry, self.sync.display_timezone):
                lines.append(f"- **{label}**: {value}")
            lines.append("")
        return lines

    def _requirements_section(self, category: WorkItemCategory) -> list[str]:
        template = template_for(category, self.properties)
        lines = ["## ⚠️ 处理要求", template.requirements_intro]
        lines.extend(
            f"{index}. {requirement}"
            for index, requirement in enumerate(template.requirements, 1)
        )
        return lines

    def _payload(self, subject: str, lines: list[str]) -> NotificationPayload:
        body = "\n".join(lines).strip()
        return NotificationPayload(
            subject=subject, body_markdown=body, body_html=markdown_to_html(body)
        )

    def build_reminder(
        self,
        category: WorkItemCategory,
        backlog: list[BacklogEntry],
        task: WorkItem,
        now: datetime | None = None,
    ) -> NotificationPayload:
        """
        Build the reminder sent after a new work item was created.

        Lists the full backlog and links the created task.
        """
        now = now or datetime.now(UTC)
        template = template_for(category, self.properties)
        subject = f"{self.workflow.label_for(category)}-{compact_timestamp(now)}"

        lines = [
            f"# {self.workflow.label_for(category)}提醒",
            "",
            "## 📋 概述",
            template.overview.format(count=len(backlog)),
            "",
            "## 🔗 行动任务",
            f"请在行动库中查看任务：[{task.title}]({task.url})",
            "",
            f"## 📝 待处理{template.noun}列表",
            *self._entry_section(category, backlog),
            *self._requirements_section(category),
            "",
            "## 📅 生成时间",
            format_datetime(now, self.sync.display_timezone),
            "",
            "---",
            FOOTER,
        ]
        return self._payload(subject, lines)

    def build_warning(
        self,
        category: WorkItemCategory,
        backlog: list[BacklogEntry],
        open_task: WorkItem,
        now: datetime | None = None,
    ) -> NotificationPayload:
        """
        Build the warning sent when an unresolved work item blocks creation.

        Shows the open task, the backlog size and a bounded backlog preview.
        """
        now = now or datetime.now(UTC)
        template = template_for(category, self.properties)
        task_kind = self.workflow.label_for(category).removesuffix("需求")
        heading = f"{task_kind}任务未完成警告"
        subject = f"⚠️ {heading}-{compact_timestamp(now)}"
        limit = self.sync.warning_preview_limit
        remaining = len(backlog) - limit
        done = self.properties.task_done

        lines = [
            f"# ⚠️ {heading}",
            "",
            "## 🚨 重要提醒",
            f"系统检测到有未完成的{task_kind}任务，"
            "**不会创建新的任务**，请先完成现有任务。",
            "",
            "## 📋 未完成任务信息",
            f"- **任务标题**: {open_task.title}",
            f"- **当前状态**: {status_display(open_task.status, self.properties)}",
            f"- **创建时间**: {format_datetime(open_task.created_at, self.sync.display_timezone)}",
            f"- **任务链接**: [点击查看任务]({open_task.url})",
            "",
            f"## 📊 待处理{template.noun}统计",
            f"目前仍有 **{len(backlog)}** 个{template.noun}需要处理，但必须先完成现有任务。",
            "",
            "## 🔄 工作流程",
            f"1. **完成现有任务**: {template.workflow_first_step}",
            f'2. **更新任务状态**: 将任务状态改为"{done}"',
            "3. **系统自动检测**: 下次运行时会自动创建新任务",
            "",
            f"## 📝 待处理{template.noun}列表",
            *self._entry_section(category, backlog[:limit]),
        ]
        if remaining > 0:
            lines.extend([f"... 还有 {remaining} 个{template.noun}需要处理", ""])
        lines.extend(
            [
                *self._requirements_section(category),
                "",
                "## 📅 警告时间",
                format_datetime(now, self.sync.display_timezone),
                "",
                "---",
                FOOTER,
            ]
        )
        return self._payload(subject, lines)
