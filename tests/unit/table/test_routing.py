"""
Unit tests for stage routing rules.
"""

import pytest

from azuretackle.core.config_manager import Stage
from azuretackle.core.exceptions import ConfigurationError
from azuretackle.table import AzureTableConfig, OperationKind, StorageOption, resolve_target

PROD = object()
DEV = object()

WRITES = [OperationKind.WRITE, OperationKind.DELETE]
READS = [OperationKind.QUERY, OperationKind.RECEIVE]


def storage(stage=None, prod=PROD, dev=DEV, with_dev=True):
    return StorageOption(
        stage=stage,
        prod_storage=AzureTableConfig(azure_table=prod),
        dev_storage=AzureTableConfig(azure_table=dev) if with_dev else None,
    )


class TestReads:
    """Queries and point lookups always use prod."""

    @pytest.mark.parametrize("kind", READS)
    @pytest.mark.parametrize("stage", [None, Stage.DEV, Stage.PROD])
    def test_reads_use_prod(self, kind, stage):
        assert resolve_target(storage(stage), kind) is PROD

    @pytest.mark.parametrize("kind", READS)
    def test_reads_need_prod_table(self, kind):
        with pytest.raises(ConfigurationError, match="please add a table"):
            resolve_target(storage(Stage.DEV, prod=None), kind)


class TestWrites:
    """Writes and deletes follow the stage."""

    @pytest.mark.parametrize("kind", WRITES)
    def test_no_stage_uses_prod(self, kind):
        assert resolve_target(storage(with_dev=False), kind) is PROD

    @pytest.mark.parametrize("kind", WRITES)
    def test_dev_stage_uses_dev(self, kind):
        assert resolve_target(storage(Stage.DEV), kind) is DEV

    @pytest.mark.parametrize("kind", WRITES)
    def test_dev_stage_without_dev_table_is_noop(self, kind):
        assert resolve_target(storage(Stage.DEV, with_dev=False), kind) is None
        assert resolve_target(storage(Stage.DEV, dev=None), kind) is None

    @pytest.mark.parametrize("kind", WRITES)
    def test_dev_stage_does_not_need_prod(self, kind):
        assert resolve_target(storage(Stage.DEV, prod=None), kind) is DEV

    @pytest.mark.parametrize("kind", WRITES)
    def test_prod_stage_prefers_dev(self, kind):
        assert resolve_target(storage(Stage.PROD), kind) is DEV

    @pytest.mark.parametrize("kind", WRITES)
    def test_prod_stage_falls_back_to_prod(self, kind):
        assert resolve_target(storage(Stage.PROD, with_dev=False), kind) is PROD

    @pytest.mark.parametrize("kind", WRITES)
    def test_prod_stage_needs_prod_table(self, kind):
        with pytest.raises(ConfigurationError):
            resolve_target(storage(Stage.PROD, prod=None), kind)

    @pytest.mark.parametrize("kind", WRITES)
    def test_no_stage_needs_prod_table(self, kind):
        with pytest.raises(ConfigurationError):
            resolve_target(storage(prod=None, with_dev=False), kind)
