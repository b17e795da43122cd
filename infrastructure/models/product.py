"""
商品数据库模型（目录的最小只读视图）
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text

from .base import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, nullable=False, index=True, comment="卖家ID")
    title = Column(String(255), nullable=False, comment="商品标题")
    price_usd = Column(Numeric(precision=10, scale=2), nullable=False, comment="价格(USD)")
    delivery_type = Column(String(32), nullable=False, default="manual", comment="auto_hosted/manual")
    delivery_content = Column(Text, nullable=True, comment="交付内容（密钥/链接/说明）")
    status = Column(String(32), nullable=False, default="draft", index=True, comment="审核状态")
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self):
        return f"<ProductModel(id={self.id}, title='{self.title}', status='{self.status}')>"
