"""
Master SKU existence check for bulk mapping uploads.

All referenced master SKUs are checked against the products table before any
mapping is written. Keys are looked up in chunks so no single request runs
into the store's row cap or URL length limits.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional
import structlog

from config import get_supabase_client, settings
from models.channel_mapping import ChannelSkuMappingCreate
from utils.store_errors import error_code, error_message, is_missing_table

logger = structlog.get_logger(__name__)


def collect_master_skus(records: list[ChannelSkuMappingCreate]) -> list[str]:
    """Distinct master SKUs in first-seen order."""
    return list(dict.fromkeys(r.master_sku for r in records if r.master_sku))


def chunk_keys(keys: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(keys), size):
        yield keys[start:start + size]


@dataclass
class MasterSkuCheck:
    """Result of a master SKU check."""
    checked: bool = False
    missing: list[str] = field(default_factory=list)
    lookup_error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return not self.missing and self.lookup_error is None

    @property
    def errors(self) -> list[str]:
        if self.lookup_error is not None:
            return [f"Database error: {self.lookup_error}"]
        return [f'Master SKU "{sku}" not found in products table' for sku in self.missing]


class MasterSkuChecker:
    """
    Verifies that mappings point at products that exist.

    The check is skipped (the upload proceeds unchecked) when the products
    table is missing or the lookup fails without a store error code, e.g. a
    dropped connection. An error returned by the store blocks the upload.
    """

    def __init__(
        self,
        db=None,
        products_table: Optional[str] = None,
        chunk_size: Optional[int] = None
    ):
        self.db = db if db is not None else get_supabase_client()
        self.table = products_table or settings.products_table
        self.chunk_size = chunk_size or settings.master_sku_lookup_chunk

    def _existing(self, master_skus: list[str]) -> set[str]:
        existing: set[str] = set()
        for keys in chunk_keys(master_skus, self.chunk_size):
            result = (
                self.db.table(self.table)
                .select("sku")
                .in_("sku", keys)
                .execute()
            )
            existing.update(row["sku"] for row in (result.data or []))
        return existing

    def check(
        self,
        records: list[ChannelSkuMappingCreate],
        skip: bool = False
    ) -> MasterSkuCheck:
        """
        Check every distinct master SKU against the products table.

        Args:
            records: Validated mappings
            skip: Skip the check entirely (no query is made)

        Returns:
            MasterSkuCheck; checked is False when the check did not run
        """
        if skip:
            logger.info("master_sku_validation_skipped", reason="requested")
            return MasterSkuCheck()

        master_skus = collect_master_skus(records)
        if not master_skus:
            return MasterSkuCheck()

        logger.info(
            "validating_master_skus",
            count=len(master_skus),
            chunk_size=self.chunk_size
        )

        try:
            existing = self._existing(master_skus)
        except Exception as e:
            code = error_code(e)
            if is_missing_table(e):
                logger.warning("products_table_not_found", table=self.table, code=code)
                return MasterSkuCheck()

            if code is None:
                logger.warning(
                    "master_sku_validation_skipped",
                    reason="lookup_error",
                    error=error_message(e),
                    error_type=type(e).__name__
                )
                return MasterSkuCheck()

            logger.error("master_sku_lookup_failed", error=error_message(e), code=code)
            return MasterSkuCheck(checked=True, lookup_error=error_message(e))

        missing = [sku for sku in master_skus if sku not in existing]

        if missing:
            logger.warning(
                "master_skus_missing",
                missing=len(missing),
                sample=missing[:5]
            )
        else:
            logger.info("master_skus_validated", count=len(master_skus))

        return MasterSkuCheck(checked=True, missing=missing)
