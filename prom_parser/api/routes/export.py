"""Export routes."""

import logging
from datetime import date
from enum import Enum
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from prom_parser.api.deps import get_exporter
from prom_parser.api.routes.search import CamelModel, ProductSchema
from prom_parser.errors import UsageDeniedError
from prom_parser.export.exporter import EXPORT_FORMATS, Exporter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/export", tags=["export"])


class ExportFormat(str, Enum):
    CSV = "csv"
    XML = "xml"


class ExportRequest(CamelModel):
    products: List[ProductSchema]


def export_filename(extension: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"prom_export_full_{today.isoformat()}.{extension}"


@router.post("/{fmt}")
async def export_products(
    fmt: ExportFormat,
    request: ExportRequest,
    exporter: Exporter = Depends(get_exporter),
):
    """Hydrate the given products and return them as a downloadable file."""
    if not request.products:
        raise HTTPException(status_code=422, detail="No products to export")

    try:
        content = await exporter.export([p.to_product() for p in request.products], fmt.value)
    except UsageDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))

    media_type, extension = EXPORT_FORMATS[fmt.value]
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(extension)}"'},
    )
