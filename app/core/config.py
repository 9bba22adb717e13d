from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Application configuration settings.
    """
    model_config = SettingsConfigDict(env_prefix="ORDER_SERVICE_", env_file=".env", extra="ignore")

    # Service Info
    service_name: str = "order-service"
    environment: str = "local"
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Mock domain policy
    stock_limit: int = 100
    payment_failure_rate: float = Field(default=0.15, ge=0.0, le=1.0)

    # Simulated latency (0 disables)
    inventory_check_latency_ms: int = 100
    payment_latency_ms: int = 150
    inventory_update_latency_ms: int = 75
    order_lookup_latency_ms: int = 50

    # Audit call
    audit_url: str = "http://localhost:8080/api/audit"
    audit_timeout_ms: int = 2000

    # Tracing
    b3_single_header: bool = False
    sampled_by_default: bool = True
    span_exporter: str = "log"  # log | zipkin | memory | none
    zipkin_url: str = "http://localhost:9411/api/v2/spans"
    zipkin_timeout_ms: int = 500

settings = Settings()
