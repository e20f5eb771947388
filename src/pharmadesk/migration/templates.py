"""Saved mapping templates, one set per record category."""

import logging
from typing import List, Optional, Union

from ..query.retry import RetryPolicy, execute_with_retry
from ..store.base import MAPPING_TEMPLATES_TABLE, RecordStore
from .exceptions import MappingTemplateNotFoundError, MigrationError
from .models import MappingTemplate, MigrationType

logger = logging.getLogger(__name__)


class MappingTemplateStore:
    """Store for named source-header mappings.

    Failures are logged and reported as ``False`` or an empty list, so a
    missing template never stops an import that can fall back to
    auto-detection.
    """

    def __init__(self, store: RecordStore, policy: Optional[RetryPolicy] = None):
        self.store = store
        self.policy = policy or RetryPolicy()

    async def save(self, template: MappingTemplate) -> bool:
        """Save a mapping template.

        Returns:
            True if the template was stored
        """
        result = await execute_with_retry(
            lambda: self.store.insert(MAPPING_TEMPLATES_TABLE, [template.to_dict()]),
            self.policy.with_context("save mapping template"),
        )
        if not result.is_success:
            logger.error(f"Failed to save mapping template '{template.name}': {result.error}")
            return False

        logger.info(f"Saved mapping template '{template.name}' for {template.data_type.value}")
        return True

    async def list(self, data_type: Union[str, MigrationType]) -> List[MappingTemplate]:
        """Get the templates for a record category, sorted by name."""
        migration_type = MigrationType.parse(data_type)
        result = await execute_with_retry(
            lambda: self.store.select(
                MAPPING_TEMPLATES_TABLE,
                filters={"data_type": migration_type.value},
                order_by="name",
            ),
            self.policy.with_context("list mapping templates"),
        )
        if not result.is_success:
            logger.error(f"Failed to fetch mapping templates: {result.error}")
            return []
        templates = []
        for row in result.data:
            try:
                templates.append(MappingTemplate.from_dict(row))
            except (KeyError, TypeError, ValueError, MigrationError) as e:
                logger.warning(f"Skipping malformed mapping template {row.get('id')}: {e}")
        return templates

    async def get_by_name(
        self, name: str, data_type: Union[str, MigrationType]
    ) -> Optional[MappingTemplate]:
        """Get a template by name, or None if there is no such template."""
        for template in await self.list(data_type):
            if template.name == name:
                return template
        return None

    async def require(
        self, name: str, data_type: Union[str, MigrationType]
    ) -> MappingTemplate:
        """Get a template by name.

        Raises:
            MappingTemplateNotFoundError: If there is no such template
        """
        template = await self.get_by_name(name, data_type)
        if template is None:
            raise MappingTemplateNotFoundError(name, MigrationType.parse(data_type).value)
        return template

    async def delete(self, template_id: str) -> bool:
        """Delete a template by id.

        Returns:
            True if the delete call succeeded
        """
        result = await execute_with_retry(
            lambda: self.store.delete_where(MAPPING_TEMPLATES_TABLE, "id", template_id),
            self.policy.with_context("delete mapping template"),
        )
        if not result.is_success:
            logger.error(f"Failed to delete mapping template {template_id}: {result.error}")
            return False
        return True
