"""
Per-category wording shared by work-item bodies and notification emails.

Property names and status values are interpolated from the PropertySchema so
the wording always matches the configured store.
"""

from typing import NamedTuple

from comment_sync.config import PropertySchema
from comment_sync.models.work_item import BacklogEntry, WorkItemCategory, WorkItemStatus
from comment_sync.utils.formatting import format_time


class CategoryTemplate(NamedTuple):
    """Fixed wording for one work item category."""

    task_heading: str
    noun: str
    overview: str
    condition: str
    requirements_intro: str
    requirements: tuple[str, ...]
    workflow_first_step: str
    link_label: str


def template_for(category: WorkItemCategory, properties: PropertySchema) -> CategoryTemplate:
    """Build the wording for a category from the configured property names."""
    if category == WorkItemCategory.REFERENCE_PROCESSING:
        status_clause = (
            f'"{properties.source_status}"字段状态为"{properties.status_unprocessed}"'
        )
        return CategoryTemplate(
            task_heading="📋 Reference处理任务",
            noun="笔记",
            overview="系统检测到 {count} 个Reference笔记需要处理。",
            condition=f"这些笔记的{status_clause}，需要人工处理。",
            requirements_intro=f"这些笔记的{status_clause}，需要：",
            requirements=(
                "阅读Reference笔记内容",
                "处理笔记中的评论",
                f'将"{properties.source_status}"字段更新为"{properties.status_processed}"',
                f'完成所有处理后，将任务状态改为"{properties.task_done}"',
            ),
            workflow_first_step="处理完所有Reference笔记",
            link_label="笔记链接",
        )

    field = properties.target_classification
    return CategoryTemplate(
        task_heading="📋 卡片处理任务",
        noun="卡片",
        overview="系统检测到 {count} 个新生成的知识卡片需要人工处理。",
        condition=f'这些卡片目前缺少"{field}"字段的值，需要建立与具体问题的联系。',
        requirements_intro=f'这些卡片目前缺少"{field}"字段的值，需要：',
        requirements=(
            "阅读对应的Reference库文件",
            "理解卡片内容",
            f'填写"{field}"字段',
            "建立卡片与具体问题的联系",
        ),
        workflow_first_step="处理完所有待处理卡片",
        link_label="卡片链接",
    )


def entry_details(
    category: WorkItemCategory, entry: BacklogEntry, timezone: str = "Asia/Shanghai"
) -> list[tuple[str, str]]:
    """(label, value) detail lines describing one backlog entry."""
    if category == WorkItemCategory.REFERENCE_PROCESSING:
        return [
            ("创建时间", format_time(entry.created_at, timezone) or "未知"),
            ("笔记链接", entry.url),
        ]
    return [
        ("讨论ID", entry.discussion_id or ""),
        ("来源笔记", entry.source_document_id or ""),
        ("卡片链接", entry.url or "待生成"),
    ]


def status_display(status: WorkItemStatus, properties: PropertySchema) -> str:
    """Human-facing status name as configured in the action store."""
    return {
        WorkItemStatus.NOT_STARTED: properties.task_not_started,
        WorkItemStatus.IN_PROGRESS: properties.task_in_progress,
        WorkItemStatus.DONE: properties.task_done,
    }[status]
