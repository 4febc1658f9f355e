from .modules import SecurityApiModule, SecurityRuntimeSettings, build_security_api_module

__all__ = [
    "SecurityApiModule",
    "SecurityRuntimeSettings",
    "build_security_api_module",
]
