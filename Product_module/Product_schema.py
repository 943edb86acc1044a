from typing import List, Optional

from pydantic import BaseModel


class OfferSummary(BaseModel):
    name: str
    discountType: str
    discountValue: float


class VariantView(BaseModel):
    variantId: int
    size: str
    price: float
    finalPrice: float
    stock: int


class CatalogProduct(BaseModel):
    productId: int
    name: str
    category: Optional[str] = None
    images: List[str] = []
    offer: Optional[OfferSummary] = None
    variants: List[VariantView]


class CatalogResponse(BaseModel):
    status: str
    message: str
    data: List[CatalogProduct]


class ProductDetailResponse(BaseModel):
    status: str
    message: str
    data: CatalogProduct
