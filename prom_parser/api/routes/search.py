"""Catalog search routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from prom_parser.api.deps import get_search_service
from prom_parser.errors import RetrievalError, ValidationError
from prom_parser.ingest.base import (
    NO_IMAGE,
    Availability,
    Product,
    ProductAttribute,
    SearchFilters,
    SearchMode,
)
from prom_parser.search.service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ProductAttributeSchema(CamelModel):
    name: str
    value: str


class ProductSchema(CamelModel):
    id: str
    title: str
    price: float
    link: str
    currency: str = "UAH"
    availability: Availability = Availability.UNKNOWN
    old_price: float | None = None
    discount: float | None = None
    external_id: str | None = None
    seller: str = "Seller"
    sku: str = ""
    image: str = NO_IMAGE
    all_images: List[str] = []
    description: str = ""
    attributes: List[ProductAttributeSchema] = []
    category_name: str = ""
    category_path: List[str] = []
    details_loaded: bool = False

    def to_product(self) -> Product:
        """Convert back to the engine record; discount is derived, not stored."""
        data = self.model_dump(exclude={"attributes", "discount"})
        return Product(
            **data,
            attributes=[ProductAttribute(name=a.name, value=a.value) for a in self.attributes],
        )


class SearchRequest(CamelModel):
    mode: SearchMode = SearchMode.CATEGORY
    shop_url: str = ""
    product_urls: List[str] = []
    max_pages: int = 1

    def to_filters(self) -> SearchFilters:
        return SearchFilters(
            mode=self.mode,
            shop_url=self.shop_url,
            product_urls=tuple(self.product_urls),
            max_pages=self.max_pages,
        )


class SearchResponse(CamelModel):
    products: List[ProductSchema]
    message: Optional[str] = None


@router.post("", response_model=SearchResponse)
async def search_products(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
):
    """
    Run a category crawl or a product-URL scrape.

    Returns list-view records in category mode and detailed records in
    products mode.
    """
    filters = request.to_filters()
    try:
        result = await service.search(filters)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RetrievalError as e:
        logger.error(f"Search failed for {e.url} after {e.attempts} attempts: {e}")
        raise HTTPException(
            status_code=502,
            detail=f"Could not load {e.url}: all relays failed or were blocked",
        )

    products = [ProductSchema.model_validate(p) for p in result.products]
    if not products:
        return SearchResponse(products=[], message="Nothing found")
    return SearchResponse(products=products)
