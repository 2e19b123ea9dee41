"""Product and Pricebook Routes - /api/v1/products, /api/v1/pricebooks."""
from fastapi import APIRouter

from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes
from crm.models.records import (
    Pricebook,
    PricebookCreate,
    PricebookUpdate,
    Product,
    ProductCreate,
    ProductUpdate,
)

router = APIRouter(prefix="/api/v1/products", tags=["Products"], responses=COMMON_RESPONSES)
pricebook_router = APIRouter(prefix="/api/v1/pricebooks", tags=["Pricebooks"], responses=COMMON_RESPONSES)

register_crud_routes(
    router,
    "products",
    "products",
    Product,
    ProductCreate,
    ProductUpdate,
    filter_fields=("family", "is_active", "product_code"),
)

register_crud_routes(
    pricebook_router,
    "pricebooks",
    "pricebooks",
    Pricebook,
    PricebookCreate,
    PricebookUpdate,
    filter_fields=("is_active", "is_standard"),
)
