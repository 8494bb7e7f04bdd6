"""Shared constants for the configuration module.

Kept apart from settings.py so the sensor and transport modules can use
them without loading the environment.
"""

from hatsensor.lib.config.enums import MeasureName

# Sampling cadence (seconds)
DEFAULT_REFRESH_INTERVAL_SEC = 30
MIN_REFRESH_INTERVAL_SEC = 1

# DHT22 glitches often on the single-wire protocol, a read is retried
# up to this many times before the tick is given up
DEFAULT_READ_ATTEMPTS = 11

# The DHT22 cannot be read more often than every 2 seconds
DEFAULT_READ_RETRY_DELAY_SEC = 2.0

# DHT22 sensor physical bounds (temperature in Celsius)
DHT22_BOUNDS = {
    MeasureName.TEMPERATURE: (-40, 80),
    MeasureName.HUMIDITY: (0, 100),
}

# MQTT
DEFAULT_MQTT_TLS_PORT = 8883
QOS_AT_MOST_ONCE = 0

# Certificates as laid out in the deployment image
DEFAULT_ROOT_CA_PATH = "/app/cert/root-CA.crt"
DEFAULT_CERTIFICATE_PATH = "/app/cert/cert.pem"
DEFAULT_PRIVATE_KEY_PATH = "/app/cert/private.key"
