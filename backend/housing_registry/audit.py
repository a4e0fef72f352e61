import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import DatabaseError

from .models import AuditLog
from .store import RegistryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestMeta:
    ip_address: str = "unknown"
    user_agent: str = "unknown"

    @classmethod
    def from_request(cls, request) -> "RequestMeta":
        forwarded = request.headers.get("X-Forwarded-For", "")
        ip_address = forwarded.split(",")[0].strip() if forwarded else request.META.get("REMOTE_ADDR", "")
        return cls(
            ip_address=ip_address or "unknown",
            user_agent=(request.headers.get("User-Agent", "") or "unknown")[:300],
        )


class AuditSink:
    """Append-only audit trail. Writes are best effort and never raise."""

    def __init__(self, store: RegistryStore):
        self.store = store

    def record(
        self,
        *,
        action: str,
        resource: str,
        status: str,
        user_id: Optional[int],
        resource_id: str = "",
        region_code: str = "",
        message: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        meta: Optional[RequestMeta] = None,
    ) -> Optional[AuditLog]:
        meta = meta or RequestMeta()
        try:
            with self.store.atomic() as tx:
                return tx.objects(AuditLog).create(
                    action=action,
                    resource=resource,
                    resource_id=str(resource_id or "")[:64],
                    status=status,
                    message=message,
                    region_code=region_code or "",
                    ip_address=meta.ip_address[:64],
                    user_agent=meta.user_agent[:300],
                    metadata_json=metadata or {},
                    created_by_id=user_id,
                )
        except DatabaseError:
            logger.exception(
                "audit log write failed",
                extra={"action": action, "resource": resource, "audit_status": status},
            )
            return None
