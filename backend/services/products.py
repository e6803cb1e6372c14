"""
Product Service — CRUD for the product catalog.

Reads include the product's supplier. Deleting a product removes its
inventory rows and risk links.
"""

from sqlalchemy.orm import selectinload

from db.models import Product
from services.base import EntityService


class ProductService(EntityService[Product]):
    model = Product

    def includes(self) -> tuple:
        return (selectinload(Product.supplier),)

    async def find_by_sku(self, sku: str) -> Product | None:
        return await self.store.find_unique(Product, {"sku": sku}, options=self.includes())
