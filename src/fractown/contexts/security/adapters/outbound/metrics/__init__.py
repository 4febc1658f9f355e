from .prometheus_security_metrics import PrometheusSecurityEventMetrics

__all__ = ["PrometheusSecurityEventMetrics"]
