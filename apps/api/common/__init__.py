from .errors import (
    fractown_error_handler,
    register_api_error_handlers,
    request_validation_error_handler,
    security_crypto_error_handler,
    totp_operation_error_handler,
)

__all__ = [
    "fractown_error_handler",
    "register_api_error_handlers",
    "request_validation_error_handler",
    "security_crypto_error_handler",
    "totp_operation_error_handler",
]
