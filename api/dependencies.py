"""
API依赖项 - 调用方身份与应用服务装配

身份由上游认证网关解析后通过请求头透传（X-User-Id / X-User-Role），此处不再校验凭据。
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from application.dtos.identity import CurrentUser
from application.ports.chain_verifier import ChainVerifier
from application.ports.notifier import Notifier
from application.services.order_service import OrderApplicationService
from application.services.refund_service import RefundApplicationService
from infrastructure.external.chains import get_chain_verifier
from infrastructure.notifications.logging_notifier import LoggingNotifier
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"


async def get_current_user(
    user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
    role: Optional[str] = Header(None, alias=USER_ROLE_HEADER),
) -> CurrentUser:
    """从网关透传的请求头解析当前用户"""
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity",
        )
    try:
        uid = int(user_id)
    except ValueError:
        uid = 0
    if uid <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid caller identity",
        )
    return CurrentUser(id=uid, role=(role or "user").strip() or "user")


async def get_current_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """需要管理员角色"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return current_user


def get_verifier() -> ChainVerifier:
    return get_chain_verifier()


def get_notifier() -> Notifier:
    return LoggingNotifier()


async def get_order_service(
    verifier: ChainVerifier = Depends(get_verifier),
    notifier: Notifier = Depends(get_notifier),
) -> OrderApplicationService:
    return OrderApplicationService(uow_factory=SQLAlchemyUnitOfWork, verifier=verifier, notifier=notifier)


async def get_refund_service(
    notifier: Notifier = Depends(get_notifier),
) -> RefundApplicationService:
    return RefundApplicationService(uow_factory=SQLAlchemyUnitOfWork, notifier=notifier)
