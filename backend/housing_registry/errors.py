from typing import Any, Dict, List, Optional


class IntakeError(RuntimeError):
    code = "INTERNAL_ERROR"
    status = 500
    default_message = "服务器内部错误"

    def __init__(self, message: str = "", *, details: Optional[List[Any]] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = list(details or [])

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class VillageNotFound(IntakeError):
    code = "VILLAGE_NOT_FOUND"
    status = 404
    default_message = "村庄不存在"


class VillageInactive(IntakeError):
    code = "VILLAGE_INACTIVE"
    status = 400
    default_message = "村庄填报端口已禁用"


class AccessDenied(IntakeError):
    code = "FORBIDDEN"
    status = 403
    default_message = "无权访问该区域数据"


class PayloadInvalid(IntakeError):
    code = "VALIDATION_ERROR"
    status = 400
    default_message = "数据验证失败"


class BusinessRuleViolation(IntakeError):
    code = "BUSINESS_VALIDATION_ERROR"
    status = 400
    default_message = "业务逻辑验证失败"


class DuplicateIdentity(IntakeError):
    code = "DUPLICATE_IDENTITY"
    status = 409
    default_message = "身份证号已存在"


class DuplicateAddress(IntakeError):
    code = "DUPLICATE_ADDRESS"
    status = 409
    default_message = "该地址的农房已存在"


class InternalIntakeError(IntakeError):
    def __init__(self, message: str = "", *, retryable: bool = False, details: Optional[List[Any]] = None):
        super().__init__(message, details=details)
        self.retryable = retryable

    def to_payload(self) -> Dict[str, Any]:
        # Internal causes are logged, never echoed to the caller.
        payload = {"error": self.code, "message": self.default_message}
        if self.retryable:
            payload["retryable"] = True
        return payload
