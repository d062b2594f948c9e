"""Base domain exceptions.

所有领域异常都应继承自 DomainException，并可以通过定义 error_code 类属性来标识错误类型，
调用方（CLI/前端适配层）据此决定展示给用户的信息。
"""


class DomainException(Exception):
    """Base exception for all domain errors.

    子类可以通过定义以下类属性来自定义错误标识：
    - error_code: 错误代码字符串（默认 "DOMAIN_ERROR"）
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str = "A domain error occurred"):
        self.message = message
        super().__init__(self.message)


class EntityNotFoundError(DomainException):
    """Raised when an entity is not found."""

    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str | None = None):
        message = f"{entity_type} not found"
        if entity_id:
            message = f"{entity_type} with id '{entity_id}' not found"
        super().__init__(message)


class ValidationError(DomainException):
    """Raised when validation fails."""

    error_code = "VALIDATION_ERROR"


class ConfigurationError(DomainException):
    """Raised when a required external service is not configured."""

    error_code = "NOT_CONFIGURED"
