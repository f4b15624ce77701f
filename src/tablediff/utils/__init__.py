"""
Utility modules for tablediff

Provides:
- retry: exponential backoff for transient database failures
- db_pool: connection pools per database engine
- logging: structured logging setup
- tracing: OpenTelemetry spans
- metrics: Prometheus metrics publishing
- vault_client: HashiCorp Vault integration for connection secrets
"""

__version__ = "1.0.0"
__all__ = ["retry", "db_pool", "logging", "tracing", "metrics", "vault_client"]
