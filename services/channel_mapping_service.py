"""
Channel SKU mapping service for CRUD operations.

Bulk CSV uploads live in bulk_upload_service; this module covers listing,
single-record writes and lookups.
"""

from typing import Any, Callable, Optional
import structlog

from config import get_supabase_client, settings
from models.channel_mapping import (
    ChannelSkuMappingCreate,
    ChannelSkuMappingUpdate,
    ChannelSkuMappingResponse,
    MappingStatus,
)
from exceptions import (
    MappingNotFoundError,
    MappingExistsError,
    DatabaseError,
)
from utils.store_errors import UNIQUENESS_CONFLICT_CODES, error_code

logger = structlog.get_logger(__name__)

# Characters that would break a PostgREST or() filter expression
_FILTER_UNSAFE = str.maketrans({",": " ", "(": " ", ")": " "})


class ChannelMappingService:
    """
    Channel SKU mapping business logic.

    Handles CRUD operations for channel_sku_mappings.
    """

    def __init__(self, db=None):
        self.db = db if db is not None else get_supabase_client()
        self.table = settings.mappings_table

    # ===================
    # READ OPERATIONS
    # ===================

    def _apply_filters(
        self,
        query,
        search: Optional[str] = None,
        status: Optional[MappingStatus] = None,
        channel: Optional[str] = None
    ):
        if search:
            term = search.translate(_FILTER_UNSAFE).strip()
            if term:
                query = query.or_(
                    f"channel_sku.ilike.%{term}%,"
                    f"channel_name.ilike.%{term}%,"
                    f"master_sku.ilike.%{term}%"
                )
        if status:
            query = query.eq("status", status.value)
        if channel:
            query = query.eq("channel_name", channel)
        return query

    def _select_all_pages(self, build_query: Callable[[], Any]) -> list[dict]:
        """
        Run a select page by page until a short page comes back.

        PostgREST truncates any single response at its max-rows setting, so
        full-table reads are fetched in pages of that size.
        """
        page_size = settings.store_max_rows
        rows: list[dict] = []
        offset = 0

        while True:
            result = build_query().range(offset, offset + page_size - 1).execute()
            page = result.data or []
            rows.extend(page)
            if len(page) < page_size:
                return rows
            offset += page_size

    def get_all(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[MappingStatus] = None,
        channel: Optional[str] = None
    ) -> tuple[list[ChannelSkuMappingResponse], int]:
        """
        Get one page of mappings, newest first.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page (defaults to settings.mappings_page_size)
            search: Substring matched against channel_sku, channel_name, master_sku
            status: Filter by status
            channel: Filter by channel name

        Returns:
            Tuple of (mappings list, total count)
        """
        page_size = page_size or settings.mappings_page_size

        logger.info(
            "getting_mappings",
            page=page,
            page_size=page_size,
            search=search,
            status=status,
            channel=channel
        )

        try:
            query = self.db.table(self.table).select("*", count="exact")
            query = self._apply_filters(query, search, status, channel)

            offset = (page - 1) * page_size
            query = query.range(offset, offset + page_size - 1)
            query = query.order("created_at", desc=True)

            result = query.execute()

            mappings = [ChannelSkuMappingResponse(**row) for row in result.data]
            total = result.count or 0

            logger.info(
                "mappings_retrieved",
                count=len(mappings),
                total=total
            )

            return mappings, total

        except Exception as e:
            logger.error("get_mappings_failed", error=str(e))
            raise DatabaseError.from_exception("select", e)

    def get_all_unpaginated(
        self,
        search: Optional[str] = None,
        status: Optional[MappingStatus] = None,
        channel: Optional[str] = None
    ) -> list[ChannelSkuMappingResponse]:
        """
        Get every mapping matching the filters, newest first.

        Used for exports.
        """
        logger.info(
            "getting_all_mappings",
            search=search,
            status=status,
            channel=channel
        )

        def build_query():
            query = self.db.table(self.table).select("*")
            query = self._apply_filters(query, search, status, channel)
            return query.order("created_at", desc=True).order("id", desc=True)

        try:
            rows = self._select_all_pages(build_query)

            logger.info("all_mappings_retrieved", count=len(rows))

            return [ChannelSkuMappingResponse(**row) for row in rows]

        except Exception as e:
            logger.error("get_all_mappings_failed", error=str(e))
            raise DatabaseError.from_exception("select", e)

    def get_channels(self) -> list[str]:
        """Distinct channel names, sorted."""
        try:
            rows = self._select_all_pages(
                lambda: self.db.table(self.table).select("channel_name").order("id")
            )
            return sorted({row["channel_name"] for row in rows if row.get("channel_name")})

        except Exception as e:
            logger.error("get_channels_failed", error=str(e))
            raise DatabaseError.from_exception("select", e)

    def get_by_id(self, mapping_id: int) -> ChannelSkuMappingResponse:
        """
        Get a single mapping by ID.

        Raises:
            MappingNotFoundError: If mapping doesn't exist
        """
        logger.debug("getting_mapping", mapping_id=mapping_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", mapping_id)
                .execute()
            )

            if not result.data:
                raise MappingNotFoundError(mapping_id)

            return ChannelSkuMappingResponse(**result.data[0])

        except MappingNotFoundError:
            raise
        except Exception as e:
            logger.error(
                "get_mapping_failed",
                mapping_id=mapping_id,
                error=str(e)
            )
            raise DatabaseError.from_exception("select", e)

    def get_by_key(self, channel_sku: str, channel_name: str) -> Optional[ChannelSkuMappingResponse]:
        """
        Get a mapping by its (channel_sku, channel_name) pair.

        Returns:
            ChannelSkuMappingResponse or None if not found
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("channel_sku", channel_sku)
                .eq("channel_name", channel_name)
                .execute()
            )

            if not result.data:
                return None

            return ChannelSkuMappingResponse(**result.data[0])

        except Exception as e:
            logger.error(
                "get_mapping_by_key_failed",
                channel_sku=channel_sku,
                channel_name=channel_name,
                error=str(e)
            )
            raise DatabaseError.from_exception("select", e)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ChannelSkuMappingCreate) -> ChannelSkuMappingResponse:
        """
        Create a new mapping.

        Raises:
            MappingExistsError: If the channel SKU is already mapped on that channel
        """
        logger.info(
            "creating_mapping",
            channel_sku=data.channel_sku,
            channel_name=data.channel_name
        )

        if self.get_by_key(data.channel_sku, data.channel_name):
            raise MappingExistsError(data.channel_sku, data.channel_name)

        try:
            result = (
                self.db.table(self.table)
                .insert(data.to_row())
                .execute()
            )

            mapping = ChannelSkuMappingResponse(**result.data[0])

            logger.info(
                "mapping_created",
                mapping_id=mapping.id,
                channel_sku=mapping.channel_sku
            )

            return mapping

        except Exception as e:
            logger.error(
                "create_mapping_failed",
                channel_sku=data.channel_sku,
                error=str(e)
            )
            # Lost a race with another writer
            if error_code(e) in UNIQUENESS_CONFLICT_CODES:
                raise MappingExistsError(data.channel_sku, data.channel_name)
            raise DatabaseError.from_exception("insert", e)

    def update(self, mapping_id: int, data: ChannelSkuMappingUpdate) -> ChannelSkuMappingResponse:
        """
        Update an existing mapping.

        Only provided fields are updated.

        Raises:
            MappingNotFoundError: If mapping doesn't exist
            MappingExistsError: If the new key collides with another mapping
        """
        logger.info("updating_mapping", mapping_id=mapping_id)

        existing = self.get_by_id(mapping_id)

        update_data = data.model_dump(mode="json", exclude_none=True)
        if not update_data:
            return existing

        new_sku = update_data.get("channel_sku", existing.channel_sku)
        new_channel = update_data.get("channel_name", existing.channel_name)
        if (new_sku, new_channel) != (existing.channel_sku, existing.channel_name):
            clash = self.get_by_key(new_sku, new_channel)
            if clash and clash.id != existing.id:
                raise MappingExistsError(new_sku, new_channel)

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", mapping_id)
                .execute()
            )

            mapping = ChannelSkuMappingResponse(**result.data[0])

            logger.info(
                "mapping_updated",
                mapping_id=mapping_id,
                fields=list(update_data.keys())
            )

            return mapping

        except Exception as e:
            logger.error(
                "update_mapping_failed",
                mapping_id=mapping_id,
                error=str(e)
            )
            raise DatabaseError.from_exception("update", e)

    def delete(self, mapping_id: int) -> bool:
        """
        Delete a mapping.

        Raises:
            MappingNotFoundError: If mapping doesn't exist
        """
        logger.info("deleting_mapping", mapping_id=mapping_id)

        self.get_by_id(mapping_id)

        try:
            self.db.table(self.table).delete().eq("id", mapping_id).execute()

            logger.info("mapping_deleted", mapping_id=mapping_id)

            return True

        except Exception as e:
            logger.error(
                "delete_mapping_failed",
                mapping_id=mapping_id,
                error=str(e)
            )
            raise DatabaseError.from_exception("delete", e)


# Singleton instance for convenience
_channel_mapping_service: Optional[ChannelMappingService] = None


def get_channel_mapping_service() -> ChannelMappingService:
    """Get or create ChannelMappingService instance."""
    global _channel_mapping_service
    if _channel_mapping_service is None:
        _channel_mapping_service = ChannelMappingService()
    return _channel_mapping_service
