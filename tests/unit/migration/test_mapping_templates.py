"""Tests for saved mapping templates."""

import pytest

from pharmadesk.migration.exceptions import MappingTemplateNotFoundError
from pharmadesk.migration.models import MappingTemplate, MigrationType
from pharmadesk.migration.templates import MappingTemplateStore
from pharmadesk.query.retry import RetryPolicy
from pharmadesk.store import MAPPING_TEMPLATES_TABLE


def _template(name, data_type=MigrationType.INVENTORY, **mappings):
    return MappingTemplate(name, "Marg ERP", data_type, mappings or {"MRP": "selling_price"})


class TestMappingTemplateStore:
    """Test cases for MappingTemplateStore."""

    @pytest.mark.asyncio
    async def test_save_and_list(self, memory_store, fast_policy):
        """Test that saved templates are listed by name for their category."""
        templates = MappingTemplateStore(memory_store, fast_policy)

        assert await templates.save(_template("Zeta export"))
        assert await templates.save(_template("Alpha export"))
        assert await templates.save(_template("Patients export", MigrationType.PATIENTS))

        listed = await templates.list("inventory")

        assert [template.name for template in listed] == ["Alpha export", "Zeta export"]
        assert all(template.id for template in listed)
        assert listed[0].mappings == {"MRP": "selling_price"}

    @pytest.mark.asyncio
    async def test_get_by_name(self, memory_store, fast_policy):
        """Test finding a template by name within a category."""
        templates = MappingTemplateStore(memory_store, fast_policy)
        await templates.save(_template("Marg", Qty="quantity"))

        found = await templates.get_by_name("Marg", MigrationType.INVENTORY)

        assert found.mappings == {"Qty": "quantity"}
        assert await templates.get_by_name("Marg", MigrationType.PATIENTS) is None
        assert await templates.get_by_name("Tally", MigrationType.INVENTORY) is None

    @pytest.mark.asyncio
    async def test_require_missing_template(self, memory_store, fast_policy):
        """Test that require raises for an unknown name."""
        with pytest.raises(MappingTemplateNotFoundError, match="'Tally' not found for Patients"):
            await MappingTemplateStore(memory_store, fast_policy).require("Tally", "patients")

    @pytest.mark.asyncio
    async def test_delete(self, memory_store, fast_policy):
        """Test deleting a template by id."""
        templates = MappingTemplateStore(memory_store, fast_policy)
        await templates.save(_template("Marg"))
        template_id = memory_store.tables[MAPPING_TEMPLATES_TABLE][0]["id"]

        assert await templates.delete(template_id) is True
        assert await templates.list(MigrationType.INVENTORY) == []

    @pytest.mark.asyncio
    async def test_save_failure(self, failing_store):
        """Test that a failed save is reported as False."""
        store = failing_store(fail_insert=-1)

        saved = await MappingTemplateStore(store, RetryPolicy(max_attempts=2, base_delay_ms=0)).save(
            _template("Marg")
        )

        assert saved is False
        assert store.calls["insert"] == 2

    @pytest.mark.asyncio
    async def test_list_failure_is_empty(self, failing_store):
        """Test that a failed read gives no templates."""
        store = failing_store(fail_select=-1)

        assert await MappingTemplateStore(store, RetryPolicy(max_attempts=1)).list("Inventory") == []

    @pytest.mark.asyncio
    async def test_delete_failure(self, failing_store):
        """Test that a failed delete is reported as False."""
        store = failing_store(fail_delete=-1)

        assert await MappingTemplateStore(store, RetryPolicy(max_attempts=1)).delete("t1") is False

    @pytest.mark.asyncio
    async def test_list_skips_malformed_rows(self, memory_store, fast_policy):
        """Test that a stored template without a name is left out."""
        templates = MappingTemplateStore(memory_store, fast_policy)
        await templates.save(_template("Marg"))
        memory_store.tables[MAPPING_TEMPLATES_TABLE].append({"id": "broken", "data_type": "Inventory"})

        assert [template.name for template in await templates.list("Inventory")] == ["Marg"]
