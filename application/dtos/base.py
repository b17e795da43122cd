"""
DTO 基类 - 统一 datetime 序列化为 UTC-Z
"""
from datetime import datetime

from pydantic import BaseModel, model_serializer

from core.response import utc_isoformat


class DTOBase(BaseModel):
    """All response DTOs render timestamps the same way as the error envelope."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                return utc_isoformat(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)
