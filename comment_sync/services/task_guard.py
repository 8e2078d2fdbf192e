"""
Task guard - at most one unresolved work item per category.

States:
- NO_UNRESOLVED_TASK: a new work item aggregating the backlog may be created
- UNRESOLVED_TASK_EXISTS: creation is refused; callers warn instead

The guard holds no state between runs. Every evaluation queries the action
store fresh, and categories never share guard state.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel

from comment_sync.config import PropertySchema, SyncConfig, WorkflowConfig
from comment_sync.core.store.base import DocumentStore
from comment_sync.models.record import Block, BlockType
from comment_sync.models.work_item import BacklogEntry, WorkItem, WorkItemCategory
from comment_sync.services.templates import entry_details, template_for
from comment_sync.utils.formatting import compact_timestamp, format_datetime, page_url
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)


class GuardState(str, Enum):
    """Guard state for one category."""

    NO_UNRESOLVED_TASK = "no_unresolved_task"
    UNRESOLVED_TASK_EXISTS = "unresolved_task_exists"


class GuardDecision(BaseModel):
    """Result of evaluating (and possibly acting on) the guard."""

    category: WorkItemCategory
    state: GuardState
    open_task: WorkItem | None = None
    created_task: WorkItem | None = None

    @property
    def may_create(self) -> bool:
        return self.state == GuardState.NO_UNRESOLVED_TASK


class TaskGuard:
    """Gates creation of aggregate work items."""

    def __init__(
        self,
        store: DocumentStore,
        workflow: WorkflowConfig | None = None,
        properties: PropertySchema | None = None,
        sync: SyncConfig | None = None,
    ):
        """
        Initialize task guard.

        Args:
            store: Document store providing work item queries and creation
            workflow: Labels and priorities per category
            properties: Property names used in work item wording
            sync: Preview limit and display timezone
        """
        self.store = store
        self.workflow = workflow or WorkflowConfig()
        self.properties = properties or PropertySchema()
        self.sync = sync or SyncConfig()

    async def evaluate(self, category: WorkItemCategory) -> GuardDecision:
        """
        Query unresolved work items of a category and decide the state.

        Raises:
            StoreError: If the query fails
            ConfigurationError: If no action store is configured
        """
        items = await self.store.query_work_items(category, unresolved_only=True)
        open_items = [item for item in items if not item.is_resolved]

        if open_items:
            open_task = open_items[0]
            logger.bind(category=category.value, work_item_id=open_task.id).warning(
                f"Unresolved {category.value} task exists: {open_task.title}"
            )
            return GuardDecision(
                category=category, state=GuardState.UNRESOLVED_TASK_EXISTS, open_task=open_task
            )

        logger.info(f"No unresolved {category.value} task")
        return GuardDecision(category=category, state=GuardState.NO_UNRESOLVED_TASK)

    async def create_task(
        self,
        category: WorkItemCategory,
        backlog: list[BacklogEntry],
        now: datetime | None = None,
    ) -> WorkItem:
        """
        Create one work item aggregating the backlog.

        Callers must have evaluated the guard to NO_UNRESOLVED_TASK first;
        guard_and_create does both.

        Args:
            category: Work item category
            backlog: Pending entries to summarize
            now: Creation time (default: current UTC time)

        Returns:
            Created work item with id and url set

        Raises:
            StoreError: If the work item cannot be created
        """
        now = now or datetime.now(UTC)
        item = WorkItem(
            title=f"{self.workflow.label_for(category)}-{compact_timestamp(now)}",
            category=category,
            priority=self.workflow.priority_for(category),
            # Only source documents can be related from the action store
            related_ids=(
                [entry.id for entry in backlog]
                if category == WorkItemCategory.REFERENCE_PROCESSING
                else []
            ),
            created_at=now,
        )
        blocks = self.build_task_blocks(category, backlog, now)

        item.id = await self.store.create_work_item(item, blocks)
        item.url = page_url(item.id)
        logger.bind(work_item_id=item.id, backlog_size=len(backlog)).info(
            f"Created {category.value} task: {item.title}"
        )
        return item

    async def guard_and_create(
        self,
        category: WorkItemCategory,
        backlog: list[BacklogEntry],
        now: datetime | None = None,
    ) -> GuardDecision:
        """Evaluate the guard and create a work item only when none is open."""
        decision = await self.evaluate(category)
        if decision.may_create:
            decision.created_task = await self.create_task(category, backlog, now)
        return decision

    def build_task_blocks(
        self, category: WorkItemCategory, backlog: list[BacklogEntry], now: datetime
    ) -> list[Block]:
        """
        Build the work item body.

        Only the first task_preview_limit entries are detailed; the rest are
        summarized by count so the body stays under the store's block ceiling.
        """
        template = template_for(category, self.properties)
        limit = self.sync.task_preview_limit
        preview = backlog[:limit]
        remaining = len(backlog) - len(preview)

        blocks = [
            Block(type=BlockType.HEADING_1, text=template.task_heading),
            Block(type=BlockType.PARAGRAPH, text=template.overview.format(count=len(backlog))),
            Block(type=BlockType.PARAGRAPH, text=template.condition),
            Block(type=BlockType.HEADING_2, text=f"📝 待处理{template.noun}统计"),
            Block(
                type=BlockType.PARAGRAPH,
                text=f"总共 {len(backlog)} 个{template.noun}需要处理",
            ),
        ]

        if preview:
            blocks.append(
                Block(type=BlockType.HEADING_2, text=f"📋 前{limit}个{template.noun}详情")
            )
            for index, entry in enumerate(preview, 1):
                details = dict(entry_details(category, entry, self.sync.display_timezone))
                blocks.append(Block(type=BlockType.HEADING_3, text=f"{index}. {entry.title}"))
                if category == WorkItemCategory.REFERENCE_PROCESSING:
                    blocks.append(
                        Block(type=BlockType.PARAGRAPH, text=f"创建时间: {details['创建时间']}")
                    )
                else:
                    blocks.append(
                        Block(type=BlockType.PARAGRAPH, text=f"讨论ID: {details['讨论ID']}")
                    )
                if entry.url:
                    blocks.append(
                        Block(
                            type=BlockType.PARAGRAPH,
                            text=f"{template.link_label}: ",
                            link=entry.url,
                        )
                    )
                blocks.append(Block(type=BlockType.DIVIDER))

            if remaining > 0:
                blocks.append(
                    Block(
                        type=BlockType.PARAGRAPH,
                        text=f"... 还有 {remaining} 个{template.noun}需要处理",
                    )
                )

        blocks.append(Block(type=BlockType.HEADING_2, text="⚠️ 处理要求"))
        blocks.extend(
            Block(type=BlockType.NUMBERED_LIST_ITEM, text=requirement)
            for requirement in template.requirements
        )
        blocks.append(
            Block(
                type=BlockType.PARAGRAPH,
                text=f"创建时间: {format_datetime(now, self.sync.display_timezone)}",
            )
        )
        return blocks
