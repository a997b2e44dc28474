from __future__ import annotations

import io

import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from order_api.core.deps import get_unit_of_work
from order_api.services.unit_of_work import UnitOfWork

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)

CUSTOMER_TOTAL_COLUMNS = ["customer_name", "number_of_orders", "total_sales"]


def _export_dataframe(
    df: pd.DataFrame,
    filename_base: str,
    export_format: str,
) -> StreamingResponse:
    """
    Convert DataFrame to the requested format and return a StreamingResponse.

    Supported formats:
      - csv: text/csv
      - xlsx: application/vnd.openxmlformats-officedocument.spreadsheetml.sheet
    Anything else falls back to csv.
    """
    export_format = (export_format or "csv").lower()
    if export_format in ("xlsx", "excel"):
        # Use openpyxl engine
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Report")
        buffer.seek(0)
        headers = {
            "Content-Disposition": f'attachment; filename="{filename_base}.xlsx"'
        }
        return StreamingResponse(
            buffer,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers=headers,
        )

    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    headers = {
        "Content-Disposition": f'attachment; filename="{filename_base}.csv"'
    }
    return StreamingResponse(buffer, media_type="text/csv", headers=headers)


# PUBLIC_INTERFACE
@router.get(
    "/customer-totals",
    summary="Customer totals report",
    description="Exports number of orders and total sales per customer, highest total first.",
    response_description="File stream (CSV/XLSX)",
)
async def customer_totals_report(
    uow: UnitOfWork = Depends(get_unit_of_work),
    format: str = Query("csv", description="Export format: csv | xlsx"),
):
    """
    Generate the Customer Totals report from the sales statistic.
    """
    statistic = await uow.orders.get_sales_statistic()
    df = pd.DataFrame(
        [row.model_dump() for row in statistic.customer_total_orders],
        columns=CUSTOMER_TOTAL_COLUMNS,
    )
    return _export_dataframe(df, "customer_totals", format)
