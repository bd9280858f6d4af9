from fieldsense.hardware.mqtt.connection_manager import (
    BrokerCredentials,
    BrokerEndpoint,
    ConnectionManager,
    HealthStatus,
)

__all__ = ["BrokerCredentials", "BrokerEndpoint", "ConnectionManager", "HealthStatus"]
