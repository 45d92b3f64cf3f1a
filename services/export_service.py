"""
Export service: mapping CSV/Excel downloads and the upload template.

CSV exports quote every value so they can be re-uploaded as-is.
"""

from io import BytesIO
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
import structlog

from models.channel_mapping import ChannelSkuMappingResponse
from parsers.csv_parser import TEMPLATE_HEADER

logger = structlog.get_logger(__name__)

TEMPLATE_FILENAME = "channel_sku_mappings_template.csv"
EXPORT_FILENAME = "channel_sku_mappings_export.csv"
EXPORT_XLSX_FILENAME = "channel_sku_mappings_export.xlsx"

TEMPLATE_ROWS = [
    ("AMZ-001", "Amazon", "PROD-001", "Active"),
    ("FK-001", "Flipkart", "PROD-001", "Active"),
    ("MYN-001", "Myntra", "PROD-002", "Active"),
]


def _quoted_line(values) -> str:
    return ",".join(f'"{value}"' for value in values)


def _mapping_values(mapping: ChannelSkuMappingResponse) -> tuple[str, str, str, str]:
    return (
        mapping.channel_sku,
        mapping.channel_name,
        mapping.master_sku,
        mapping.status.value,
    )


class ExportService:
    """Service for generating mapping downloads."""

    def template_csv(self) -> str:
        """Upload template: header plus three example rows."""
        lines = [",".join(TEMPLATE_HEADER)]
        lines.extend(_quoted_line(row) for row in TEMPLATE_ROWS)
        return "\n".join(lines)

    def mappings_csv(self, mappings: list[ChannelSkuMappingResponse]) -> str:
        """
        Serialize mappings to CSV.

        Args:
            mappings: Rows to export, in display order

        Returns:
            CSV text with the template header and quoted values
        """
        logger.info("exporting_mappings_csv", count=len(mappings))

        header = ",".join(TEMPLATE_HEADER) + "\n"
        return header + "\n".join(_quoted_line(_mapping_values(m)) for m in mappings)

    def mappings_excel(
        self,
        mappings: list[ChannelSkuMappingResponse],
        sheet_title: Optional[str] = None
    ) -> BytesIO:
        """
        Write mappings to an Excel workbook.

        Returns:
            BytesIO containing the .xlsx file
        """
        logger.info("exporting_mappings_excel", count=len(mappings))

        wb = Workbook()
        ws = wb.active
        ws.title = sheet_title or "Channel SKU Mappings"

        ws.append(TEMPLATE_HEADER)
        header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
        for cell in ws[1]:
            cell.font = Font(bold=True)
            cell.fill = header_fill

        for mapping in mappings:
            ws.append(list(_mapping_values(mapping)))

        for column, width in zip("ABCD", (24, 18, 24, 10)):
            ws.column_dimensions[column].width = width
        ws.freeze_panes = "A2"

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output


# Singleton instance for convenience
_export_service: Optional[ExportService] = None


def get_export_service() -> ExportService:
    """Get or create ExportService instance."""
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service
