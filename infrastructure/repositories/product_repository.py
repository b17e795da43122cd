"""
商品仓储实现（只读目录查询）
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.product.entity import DeliveryType, Product, ProductStatus
from domain.product.repository import ProductRepository
from infrastructure.models.product import ProductModel


class SQLAlchemyProductRepository(ProductRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: ProductModel) -> Product:
        return Product(
            id=model.id,
            seller_id=model.seller_id,
            title=model.title,
            price_usd=Decimal(str(model.price_usd)),
            delivery_type=DeliveryType(model.delivery_type),
            delivery_content=model.delivery_content,
            status=ProductStatus(model.status),
            created_at=model.created_at,
        )

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        result = await self.session.execute(
            select(ProductModel).where(ProductModel.id == product_id)
        )
        db_product = result.scalar_one_or_none()
        return self._to_entity(db_product) if db_product else None
