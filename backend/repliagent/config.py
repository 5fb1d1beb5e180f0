from pydantic_settings import BaseSettings
from typing import Dict, List, Optional


class Settings(BaseSettings):
    """Agent configuration"""

    # Application
    app_name: str = "repliagent-mongodb"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Node identity
    node_id: Optional[str] = None

    # MongoDB node
    node_address: str = "localhost:27017"
    cluster_address: Optional[str] = None
    connection_timeout_seconds: Optional[int] = None
    heartbeat_frequency_seconds: Optional[int] = None
    max_idle_time_seconds: Optional[int] = None

    # Credentials
    mongo_username: Optional[str] = None
    mongo_password: Optional[str] = None
    mongo_auth_source: str = "admin"
    mongo_auth_mechanism: Optional[str] = None

    # TLS
    tls_enabled: bool = False
    tls_ca_file: Optional[str] = None
    tls_cert_key_file: Optional[str] = None
    tls_allow_invalid_certificates: bool = False

    # Store version detection
    version_command: List[str] = ["mongod", "--version"]
    version_command_env: Dict[str, str] = {}
    version_command_timeout_seconds: float = 10.0
    version_file: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "REPLIAGENT_"
        case_sensitive = False


# Global settings instance
settings = Settings()
