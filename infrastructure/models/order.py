"""
订单/退款数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text,
)
from sqlalchemy.orm import relationship

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderModel(Base):
    """
    订单数据库模型

    所有业务规则都在 domain.order.entity.Order 中；
    状态变更通过仓储的条件更新（WHERE status = :expected）写回
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    buyer_id = Column(Integer, nullable=False, index=True, comment="买家ID")
    seller_id = Column(Integer, nullable=False, index=True, comment="卖家ID")
    product_id = Column(Integer, nullable=False, index=True, comment="商品ID")

    # 下单时的价格快照
    amount_usd = Column(Numeric(precision=10, scale=2), nullable=False, comment="订单金额(USD)")

    status = Column(
        String(32),
        nullable=False,
        default="created",
        index=True,
        comment="created/paid_reported/payment_verified/confirmed/completed/cancelled/refund_requested/refunded",
    )

    # 付款凭证
    transaction_hash = Column(String(255), nullable=True, comment="链上交易哈希/签名")
    payment_network = Column(String(32), nullable=True, comment="ethereum/bsc/polygon/bitcoin/solana")
    payment_verified = Column(Boolean, nullable=False, default=False, comment="链上校验是否通过")
    verification_details = Column(JSON, nullable=True, comment="最近一次链上校验结果")

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    refunds = relationship("RefundModel", back_populates="order", lazy="select")

    __table_args__ = (
        Index("ix_orders_buyer_created", "buyer_id", "created_at"),
        Index("ix_orders_seller_created", "seller_id", "created_at"),
    )

    def __repr__(self):
        return f"<OrderModel(id={self.id}, buyer_id={self.buyer_id}, status='{self.status}')>"


class RefundModel(Base):
    """
    退款数据库模型

    同一订单最多一条 pending 退款，由部分唯一索引保证
    """
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, index=True)

    order_id = Column(
        Integer,
        ForeignKey("orders.id"),
        nullable=False,
        index=True,
        comment="关联订单ID",
    )
    requester_id = Column(Integer, nullable=False, index=True, comment="申请人（买家）ID")

    amount_usd = Column(Numeric(precision=10, scale=2), nullable=False, comment="退款金额(USD)")
    reason = Column(Text, nullable=False, comment="退款原因")

    status = Column(String(32), nullable=False, default="pending", index=True, comment="pending/approved/rejected/completed")

    admin_note = Column(Text, nullable=True, comment="处理备注")
    processed_by = Column(Integer, nullable=True, comment="处理人ID")
    refund_transaction_hash = Column(String(255), nullable=True, comment="退款打款交易哈希")

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    order = relationship("OrderModel", back_populates="refunds")

    __table_args__ = (
        Index(
            "uq_refunds_order_pending",
            "order_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_refunds_status_created", "status", "created_at"),
    )

    def __repr__(self):
        return f"<RefundModel(id={self.id}, order_id={self.order_id}, status='{self.status}')>"
