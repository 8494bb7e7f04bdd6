"""DHT22 publisher service entrypoint.

Samples the DHT22 sensor for temperature and humidity readings and
publishes them to the MQTT broker until SIGINT or SIGTERM.

Usage: python -m hatsensor.dht
"""

from hatsensor.dht.polling import main

if __name__ == "__main__":
    main()
